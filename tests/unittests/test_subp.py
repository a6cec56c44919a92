# This file is part of hostnetd. See LICENSE file for license information.

"""Tests for hostnetd.subp utility functions"""

import stat

import pytest

from hostnetd import subp


class TestSubp:
    @pytest.mark.allow_subp_for("sh")
    def test_subp_handles_strings(self):
        out, err = subp.subp(["sh", "-c", "printf 'hi\\nthere'"])
        assert "hi\nthere" == out
        assert "" == err

    @pytest.mark.allow_subp_for("sh")
    def test_subp_capture_stderr(self):
        out, err = subp.subp(["sh", "-c", "echo OUT; echo ERR >&2"])
        assert "OUT\n" == out
        assert "ERR\n" == err

    @pytest.mark.allow_subp_for("sh")
    def test_subp_unexpected_exit_code(self):
        with pytest.raises(subp.ProcessExecutionError) as exc_info:
            subp.subp(["sh", "-c", "echo bad >&2; exit 3"])
        assert 3 == exc_info.value.exit_code
        assert "bad" == exc_info.value.stderr
        assert "Exit code: 3" in str(exc_info.value)

    @pytest.mark.allow_subp_for("sh")
    def test_subp_allowed_exit_codes(self):
        out, _err = subp.subp(["sh", "-c", "echo ok; exit 1"], rcs=[0, 1])
        assert "ok\n" == out

    @pytest.mark.allow_subp_for("sleep")
    def test_subp_timeout(self):
        with pytest.raises(subp.ProcessExecutionError) as exc_info:
            subp.subp(["sleep", "5"], timeout=0.1)
        assert "Timed out after 0.1 seconds" in str(exc_info.value)

    @pytest.mark.allow_subp_for("/nonexistent/hostnetd-cmd")
    def test_subp_missing_program(self):
        with pytest.raises(subp.ProcessExecutionError) as exc_info:
            subp.subp(["/nonexistent/hostnetd-cmd"])
        assert exc_info.value.errno == 2

    @pytest.mark.allow_all_subp
    def test_subp_rejects_non_string_args(self):
        with pytest.raises(subp.ProcessExecutionError) as exc_info:
            subp.subp(["networkctl", 42])
        assert "Running invalid command" in str(exc_info.value)


class TestProcessExecutionError:
    def test_default_message(self):
        error = subp.ProcessExecutionError()
        assert (
            "Unexpected error while running command.\n"
            "Command: -\n"
            "Exit code: -\n"
            "Reason: -\n"
            "Stdout: -\n"
            "Stderr: -" == str(error)
        )

    def test_multiline_output_is_indented(self):
        error = subp.ProcessExecutionError(
            stdout="line1\nline2\n", exit_code=1, cmd=["x"]
        )
        assert "Stdout: line1\n        line2\n" in str(error)

    def test_is_an_os_error(self):
        assert isinstance(subp.ProcessExecutionError(), OSError)


class TestWhich:
    def test_which_finds_executable(self, tmp_path):
        exe = tmp_path / "networkctl"
        exe.write_text("#!/bin/sh\n")
        exe.chmod(exe.stat().st_mode | stat.S_IXUSR)
        assert str(exe) == subp.which("networkctl", search=[str(tmp_path)])

    def test_which_skips_non_executable(self, tmp_path):
        (tmp_path / "networkctl").write_text("")
        assert subp.which("networkctl", search=[str(tmp_path)]) is None

    def test_which_with_path_separator(self, tmp_path):
        exe = tmp_path / "udevadm"
        exe.write_text("#!/bin/sh\n")
        exe.chmod(0o755)
        assert str(exe) == subp.which(str(exe))
