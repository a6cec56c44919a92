# This file is part of hostnetd. See LICENSE file for license information.
"""Shared test helpers."""

import threading
from typing import Iterable, List, Optional

from hostnetd import subp
from hostnetd.host import Host
from hostnetd.net.convergence import check_cancelled
from hostnetd.net.network_config import from_dict

MAC = "aa:bb:cc:dd:ee:ff"

SIMPLE_CONFIG = {
    "interfaces": [
        {
            "name": "eth-main",
            "hwaddr": MAC,
            "addresses": ["192.0.2.5/24"],
        }
    ]
}

FULL_CONFIG = {
    "interfaces": [
        {
            "name": "uplink",
            "hwaddr": "AA:BB:CC:00:00:01",
            "mtu": 9000,
            "addresses": ["dhcp4", "slaac"],
            "routes": [{"to": "0.0.0.0/0", "via": "dhcp4"}],
            "vlan": 10,
            "lldp": True,
        }
    ],
    "bonds": [
        {
            "name": "storage",
            "hwaddr": "aa:bb:cc:00:00:10",
            "mode": "802.3ad",
            "members": ["aa:bb:cc:00:00:11", "aa:bb:cc:00:00:12"],
            "addresses": ["10.0.0.2/24"],
            "routes": [{"to": "10.1.0.0/16", "via": "10.0.0.1"}],
        }
    ],
    "vlans": [
        {
            "name": "mgmt",
            "parent": "uplink",
            "id": 100,
            "addresses": ["dhcp6"],
        }
    ],
    "dns": {
        "hostname": "host01",
        "domain": "example.org",
        "search_domains": ["example.org", "example.net"],
        "nameservers": ["192.0.2.53", "2001:db8::53"],
    },
    "ntp": {"timeservers": ["ntp1.example.org", "ntp2.example.org"]},
    "proxy": {"http_proxy": "http://proxy:3128", "NO_PROXY": "localhost"},
}


def simple_config():
    return from_dict(SIMPLE_CONFIG)


def full_config():
    return from_dict(FULL_CONFIG)


class FakeHost(Host):
    """A Host recording side effects instead of touching the system.

    ``networkctl status <dev>`` reports routable for devices listed in
    ``routable`` and fails for devices listed in ``missing``.
    """

    def __init__(
        self,
        routable: Iterable[str] = (),
        missing: Iterable[str] = (),
        udev_ready: bool = True,
    ):
        self.routable = set(routable)
        self.missing = set(missing)
        self.udev_ready = udev_ready
        self.commands: List[List[str]] = []
        self.timeouts: List[Optional[float]] = []
        self.calls: List[str] = []
        self.hostname: Optional[str] = None
        self.proxy = None
        self.on_status = None
        self._lock = threading.Lock()

    def run(self, args, rcs=None, timeout=None):
        with self._lock:
            self.commands.append(list(args))
            self.timeouts.append(timeout)
            if args[0] != "networkctl":
                self.calls.append(" ".join(args))
        if args[:2] == ["networkctl", "status"]:
            device = args[2]
            if self.on_status:
                self.on_status(device)
            if device in self.missing:
                raise subp.ProcessExecutionError(
                    cmd=args, exit_code=1, stderr="Interface not found"
                )
            state = "routable" if device in self.routable else "degraded"
            return subp.SubpResult(
                "%s\n           State: %s (configured)\n" % (device, state),
                "",
            )
        return subp.SubpResult("", "")

    def set_hostname(self, hostname):
        self.calls.append("set_hostname %s" % hostname)
        self.hostname = hostname

    def update_environment(self, proxy):
        self.calls.append("update_environment")
        self.proxy = proxy

    def wait_for_udev_ready(self, timeout, cancel=None):
        self.calls.append("wait_for_udev_ready")
        check_cancelled(cancel)
        return self.udev_ready

    def status_queries(self) -> List[str]:
        return [
            c[2] for c in self.commands if c[:2] == ["networkctl", "status"]
        ]
