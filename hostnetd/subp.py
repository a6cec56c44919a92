# This file is part of hostnetd. See LICENSE file for license information.
"""Common utility functions for interacting with subprocess."""

import collections
import logging
import os
import subprocess
import time
from errno import ENOEXEC
from typing import List, Optional

LOG = logging.getLogger(__name__)

SubpResult = collections.namedtuple("SubpResult", ["stdout", "stderr"])


class ProcessExecutionError(IOError):
    MESSAGE_TMPL = (
        "%(description)s\n"
        "Command: %(cmd)s\n"
        "Exit code: %(exit_code)s\n"
        "Reason: %(reason)s\n"
        "Stdout: %(stdout)s\n"
        "Stderr: %(stderr)s"
    )
    empty_attr = "-"

    def __init__(
        self,
        stdout=None,
        stderr=None,
        exit_code=None,
        cmd=None,
        description=None,
        reason=None,
        errno=None,
    ):
        self.cmd = cmd or self.empty_attr

        if description:
            self.description = description
        elif not exit_code and errno == ENOEXEC:
            self.description = "Exec format error. Missing #! in script?"
        else:
            self.description = "Unexpected error while running command."

        self.exit_code = (
            exit_code if isinstance(exit_code, int) else self.empty_attr
        )

        if not stderr:
            self.stderr = self.empty_attr if stderr is None else stderr
        else:
            self.stderr = self._indent_text(stderr)

        if not stdout:
            self.stdout = self.empty_attr if stdout is None else stdout
        else:
            self.stdout = self._indent_text(stdout)

        self.reason = reason or self.empty_attr

        if errno:
            self.errno = errno
        message = self.MESSAGE_TMPL % {
            "description": self.description,
            "cmd": self.cmd,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "reason": self.reason,
        }
        IOError.__init__(self, message)

    def _indent_text(self, text: str, indent_level=8) -> str:
        """
        indent text on all but the first line, allowing for easy to read output

        remove any newlines at end of text first to prevent unneeded blank
        line in output
        """
        return text.rstrip("\n").replace("\n", "\n" + " " * indent_level)


def raise_on_invalid_command(args: List[str]):
    """check argument types to ensure that subp() can run the argument

    Throw a user-friendly exception which explains the issue.

    args: list of arguments passed to subp()
    raises: ProcessExecutionError with information explaining the issue
    """
    for component in args:
        if not isinstance(component, str):
            LOG.warning("Running invalid command: %s", args)
            raise ProcessExecutionError(
                cmd=args, reason=f"Running invalid command: {args}"
            )


def subp(args: List[str], *, rcs=None, timeout=None) -> SubpResult:
    """Run a subprocess.

    :param args: command to run in a list. [cmd, arg1, arg2...]
    :param rcs:
        a list of allowed return codes.  If subprocess exits with a value not
        in this list, a ProcessExecutionError will be raised.
    :param timeout: maximum time for the subprocess to run, passed directly to
        the timeout parameter of Popen.communicate()

    :return stdout and stderr as strings.
    """
    if rcs is None:
        rcs = [0]

    raise_on_invalid_command(args)
    LOG.debug("Running command %s with allowed return codes %s", args, rcs)

    try:
        before = time.monotonic()
        # using devnull assures any reads get null, rather
        # than possibly waiting on input.
        sp = subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
        )
        out, err = sp.communicate(timeout=timeout)
        total = time.monotonic() - before
        if total > 0.1:
            LOG.debug("%s took %.3ss to run", args, total)
    except subprocess.TimeoutExpired as e:
        sp.kill()
        sp.communicate()
        raise ProcessExecutionError(
            cmd=args, reason=f"Timed out after {timeout} seconds"
        ) from e
    except OSError as e:
        raise ProcessExecutionError(
            cmd=args,
            reason=e,
            errno=e.errno,
            stdout="-",
            stderr="-",
        ) from e

    out = out.decode("utf-8", "replace")
    err = err.decode("utf-8", "replace")

    rc = sp.returncode
    if rc not in rcs:
        raise ProcessExecutionError(
            stdout=out, stderr=err, exit_code=rc, cmd=args
        )
    return SubpResult(out, err)


def which(program, search=None) -> Optional[str]:
    if os.path.sep in program and is_exe(program):
        # if program had a '/' in it, then do not search PATH
        return program

    if search is None:
        search = [
            p.strip('"') for p in os.environ.get("PATH", "").split(os.pathsep)
        ]
    # normalize path input
    search = [os.path.abspath(p) for p in search]

    for path in search:
        ppath = os.path.sep.join((path, program))
        if is_exe(ppath):
            return ppath

    return None


def is_exe(fpath):
    # return boolean indicating if fpath exists and is executable.
    return os.path.isfile(fpath) and os.access(fpath, os.X_OK)
