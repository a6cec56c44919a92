# This file is part of hostnetd. See LICENSE file for license information.
"""Host side effects needed to apply a network configuration.

Everything that touches the running system outside of the networkd
configuration directory goes through a Host, so an apply cycle can be
exercised against a fake in tests.
"""
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from hostnetd import settings, subp, util
from hostnetd.net.convergence import check_cancelled
from hostnetd.net.network_config import ProxyConfig

LOG = logging.getLogger(__name__)

ROUTABLE_STATE = "State: routable"


class Host(ABC):
    @abstractmethod
    def run(
        self, args: List[str], rcs=None, timeout: Optional[float] = None
    ) -> subp.SubpResult:
        """Run a host command, raising ProcessExecutionError on failure.

        A command still running after timeout seconds is killed.
        """
        raise NotImplementedError()

    @abstractmethod
    def set_hostname(self, hostname: str) -> None:
        """Set the hostname, an empty one restores the platform default."""
        raise NotImplementedError()

    @abstractmethod
    def update_environment(self, proxy: Optional[ProxyConfig]) -> None:
        """Set the proxy variables, or clear them when proxy is None."""
        raise NotImplementedError()

    @abstractmethod
    def wait_for_udev_ready(
        self, timeout: float, cancel: Optional[threading.Event] = None
    ) -> bool:
        """Wait for udev to accept events.

        Return False when no readiness signal showed up within timeout.
        Raise NetworkApplyCancelled as soon as cancel is set.
        """
        raise NotImplementedError()

    def manage_service(self, action: str, service: str, *extra_args: str):
        """
        Perform the requested action on a service.
        May raise ProcessExecutionError
        """
        cmds = {
            "stop": ["stop", service],
            "start": ["start", service],
            "enable": ["enable", service],
            "disable": ["disable", service],
            "restart": ["restart", service],
            "reload": ["reload-or-restart", service],
            "status": ["status", service],
        }
        return self.run(["systemctl"] + cmds[action] + list(extra_args))

    def enable_units(self, *units: str, now: bool = True):
        """Enable a set of units, starting them right away by default."""
        cmd = ["systemctl", "enable"]
        if now:
            cmd.append("--now")
        return self.run(cmd + list(units))

    def udev_trigger(self):
        return self.run(["udevadm", "trigger", "--action=add"])

    def udev_settle(self):
        return self.run(["udevadm", "settle"])

    def is_routable(self, device: str, timeout=None) -> bool:
        try:
            out, _err = self.run(
                ["networkctl", "status", device], timeout=timeout
            )
        except subp.ProcessExecutionError as e:
            LOG.debug("Unable to query status of %s: %s", device, e.reason)
            return False
        return ROUTABLE_STATE in out


class SystemdHost(Host):
    """A Host backed by systemd, udev and the local filesystem."""

    def __init__(self, config=None):
        if not config:
            config = {}
        self.proxy_env_file = config.get(
            "proxy_env_file", settings.CFG_BUILTIN["proxy_env_file"]
        )
        self.udev_control_socket = config.get(
            "udev_control_socket", settings.CFG_BUILTIN["udev_control_socket"]
        )
        self.command_timeout = util.get_cfg_option_float(
            config, "command_timeout", settings.CFG_BUILTIN["command_timeout"]
        )

    def run(self, args, rcs=None, timeout=None):
        if timeout is None:
            timeout = self.command_timeout
        return subp.subp(args, rcs=rcs, timeout=timeout)

    def set_hostname(self, hostname):
        if hostname:
            LOG.info("Setting hostname to %s", hostname)
        else:
            LOG.info("Resetting hostname to the platform default")
        self.run(["hostnamectl", "set-hostname", hostname])

    def _read_proxy_env(self) -> Dict[str, str]:
        if not os.path.isfile(self.proxy_env_file):
            return {}
        env = {}
        for line in util.load_text_file(self.proxy_env_file).splitlines():
            key, sep, value = line.partition("=")
            if sep and key.strip() and not key.startswith("#"):
                env[key.strip()] = value
        return env

    def update_environment(self, proxy):
        for key in self._read_proxy_env():
            os.environ.pop(key, None)

        variables = proxy.as_dict() if proxy else {}
        if not variables:
            if os.path.isfile(self.proxy_env_file):
                util.del_file(self.proxy_env_file)
                LOG.debug(
                    "no proxy configured, removed %s", self.proxy_env_file
                )
            return

        LOG.debug("write proxy environment to %s", self.proxy_env_file)
        util.write_file(
            self.proxy_env_file,
            "".join("%s=%s\n" % (k, v) for k, v in variables.items()),
        )
        os.environ.update(variables)

    def wait_for_udev_ready(self, timeout, cancel=None):
        missing = util.wait_for_files(
            [self.udev_control_socket],
            timeout,
            log_pre="udev: ",
            cancel=cancel,
        )
        check_cancelled(cancel)
        return not missing
