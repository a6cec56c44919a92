# This file is part of hostnetd. See LICENSE file for license information.
"""Apply a NetworkConfig to the running host."""
import logging
import threading
from typing import Optional

from hostnetd import seed, settings, util
from hostnetd.host import Host
from hostnetd.net import networkd
from hostnetd.net.convergence import (
    check_cancelled,
    interruptible_sleep,
    wait_for_routable,
)
from hostnetd.net.network_config import NetworkConfig, target_hostname

LOG = logging.getLogger(__name__)


class NetworkApplier:
    """Serialize and run network apply cycles.

    An apply wipes and rewrites the networkd configuration directory and
    restarts services, so only one cycle may run at a time; concurrent
    callers block until the running cycle is over.
    """

    def __init__(
        self,
        host: Host,
        renderer: Optional[networkd.Renderer] = None,
        config=None,
    ):
        if not config:
            config = {}
        self.host = host
        self.renderer = renderer or networkd.Renderer(config)
        defaults = settings.CFG_BUILTIN
        self.udev_ready_timeout = util.get_cfg_option_float(
            config, "udev_ready_timeout", defaults["udev_ready_timeout"]
        )
        self.udev_fallback_delay = util.get_cfg_option_float(
            config, "udev_fallback_delay", defaults["udev_fallback_delay"]
        )
        self.poll_interval = util.get_cfg_option_float(
            config, "poll_interval", defaults["poll_interval"]
        )
        self.seed_dir = config.get("seed_dir", defaults["seed_dir"])
        self._lock = threading.Lock()

    def apply(
        self,
        cfg: NetworkConfig,
        timeout: float,
        require_all: Optional[bool] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        """Apply ``cfg`` and wait up to ``timeout`` seconds for it to
        converge.

        ``require_all`` selects the convergence policy; when None it is
        True if a network seed is present (first boot provisioning) and
        False for a live reconfiguration.

        Any failure aborts the cycle as is; nothing is rolled back.

        @raises: ProcessExecutionError, OSError, NetworkTimeoutError or
            NetworkApplyCancelled.
        """
        if cfg is None:
            raise ValueError("no network configuration provided")
        if require_all is None:
            require_all = seed.network_seed_exists(self.seed_dir)

        with self._lock:
            self._apply(cfg, timeout, require_all, cancel)

    def _apply(self, cfg, timeout, require_all, cancel):
        check_cancelled(cancel)
        self.host.set_hostname(target_hostname(cfg))
        self.host.update_environment(cfg.proxy)

        self.renderer.render(cfg)

        check_cancelled(cancel)
        self._wait_for_udev(cancel)

        # Re-run udev rules so links pick up their new names.
        LOG.debug("Triggering udev")
        self.host.udev_trigger()
        self.host.udev_settle()

        check_cancelled(cancel)
        LOG.info("Restarting %s", settings.NETWORKD_SERVICE)
        self.host.manage_service("restart", settings.NETWORKD_SERVICE)

        # timesyncd stays disabled until the network is configured so it
        # never starts with stale fallback servers.
        LOG.info("Restarting %s", settings.TIMESYNCD_SERVICE)
        self.host.manage_service("restart", settings.TIMESYNCD_SERVICE)

        wait_for_routable(
            cfg,
            self.host,
            timeout,
            require_all,
            cancel=cancel,
            interval=self.poll_interval,
        )

    def _wait_for_udev(self, cancel):
        if self.host.wait_for_udev_ready(self.udev_ready_timeout, cancel):
            return
        LOG.warning(
            "No udev readiness signal after %s seconds, waiting %s seconds",
            self.udev_ready_timeout,
            self.udev_fallback_delay,
        )
        interruptible_sleep(self.udev_fallback_delay, cancel)
