# This file is part of hostnetd. See LICENSE file for license information.
import logging
import threading
from typing import Callable, Optional

from hostnetd.net.network_config import NetworkConfig

LOG = logging.getLogger(__name__)


class NetworkState:
    """Holder of the active network configuration.

    Readers get the active NetworkConfig, an immutable value, through
    snapshot(). Writers go through replace(), which serializes updates and
    only makes a new configuration active once it was applied successfully.
    """

    def __init__(self, active: Optional[NetworkConfig] = None):
        self._active = active
        self._read_lock = threading.Lock()
        self._write_lock = threading.Lock()
        # The most recent configuration that failed to apply, if any.
        self.last_failed: Optional[NetworkConfig] = None

    def snapshot(self) -> Optional[NetworkConfig]:
        with self._read_lock:
            return self._active

    def replace(
        self,
        build: Callable[[Optional[NetworkConfig]], NetworkConfig],
        apply: Callable[[NetworkConfig], None],
    ) -> NetworkConfig:
        """Stage, apply and commit a new active configuration.

        ``build`` receives the active configuration and returns the staged
        one; ``apply`` pushes it to the host. Both run while holding the
        write lock so a concurrent update can not be based on a stale
        snapshot. If either raises, the previous configuration stays
        active and the exception propagates.
        """
        with self._write_lock:
            previous = self.snapshot()
            staged = build(previous)
            try:
                apply(staged)
            except Exception:
                self.last_failed = staged
                LOG.warning(
                    "Failed to apply network configuration,"
                    " keeping the previous one active"
                )
                raise
            with self._read_lock:
                self._active = staged
            self.last_failed = None
            LOG.info("Committed new active network configuration")
            return staged
