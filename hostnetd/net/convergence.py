# This file is part of hostnetd. See LICENSE file for license information.
"""Wait for configured network devices to become routable."""
import logging
import threading
import time
from typing import TYPE_CHECKING, Iterable, Optional

from hostnetd.net.network_config import NetworkConfig
from hostnetd.net.networkd import device_names

if TYPE_CHECKING:
    from hostnetd.host import Host

LOG = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


class NetworkTimeoutError(RuntimeError):
    pass


class NetworkApplyCancelled(RuntimeError):
    pass


def check_cancelled(cancel: Optional[threading.Event]):
    if cancel is not None and cancel.is_set():
        raise NetworkApplyCancelled("network apply cancelled")


def interruptible_sleep(seconds: float, cancel: Optional[threading.Event]):
    """Sleep for ``seconds``, returning early by raising if cancelled."""
    if cancel is None:
        time.sleep(seconds)
        return
    if cancel.wait(seconds):
        raise NetworkApplyCancelled("network apply cancelled")


def category_converged(
    host: "Host",
    names: Iterable[str],
    require_all: bool,
    cancel: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> bool:
    all_routable = True
    any_routable = False
    for name in names:
        check_cancelled(cancel)
        routable = host.is_routable(name, timeout=timeout)
        all_routable = all_routable and routable
        any_routable = any_routable or routable
    return all_routable if require_all else any_routable


def wait_for_routable(
    cfg: NetworkConfig,
    host: "Host",
    timeout: float,
    require_all: bool,
    cancel: Optional[threading.Event] = None,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """Poll until the configured devices are routable.

    Interfaces, bonds and vlans are judged separately. With ``require_all``
    every device of a category must be routable, otherwise one routable
    device is enough for that category. Categories without devices are
    ignored. The first poll cycle in which every category passes ends the
    wait.

    @raises: NetworkTimeoutError once ``timeout`` seconds pass without a
        successful poll cycle.
    @raises: NetworkApplyCancelled as soon as ``cancel`` is set.
    """
    categories = {k: v for k, v in device_names(cfg).items() if v}
    LOG.debug(
        "Waiting up to %s seconds for %s devices to become routable: %s",
        timeout,
        "all" if require_all else "any",
        categories,
    )

    end_time = time.monotonic() + timeout
    pending = None
    while True:
        if time.monotonic() > end_time:
            msg = "timed out waiting for network to become routable"
            if pending:
                msg += " (%s not converged)" % pending
            raise NetworkTimeoutError(msg)

        interruptible_sleep(interval, cancel)

        # Status queries are bounded by the time left before the deadline.
        remaining = max(end_time - time.monotonic(), interval)
        pending = None
        for category, names in categories.items():
            if not category_converged(
                host, names, require_all, cancel, timeout=remaining
            ):
                pending = category
                break

        if pending is None:
            LOG.info("Network is routable")
            return
