# This file is part of hostnetd. See LICENSE file for license information.

import ipaddress
import re
from typing import Callable

MAC_RE = re.compile(r"^([0-9a-fA-F]{2}:){5}[0-9a-fA-F]{2}$")

# Kernel limit, including the terminating NUL.
IFNAMSIZ = 16
VLAN_DEVICE_PREFIX = "vl"


def is_valid_mac(mac: str) -> bool:
    """Returns a bool indicating if ``mac`` is a colon separated
    48-bit hardware address."""
    return bool(MAC_RE.match(mac or ""))


def strip_hwaddr(mac: str) -> str:
    """Return ``mac`` lowercased with its colons removed.

    This is the suffix used to derive stable device and file names, e.g.
    ``AA:BB:CC:DD:EE:FF`` becomes ``aabbccddeeff``.
    """
    return mac.replace(":", "").lower()


def maybe_get_address(convert_to_address: Callable, address: str, **kwargs):
    """Use a function to return an address. If conversion throws a ValueError
    exception return False.

    :param convert_to_address:
        The function that was passed in
    :param address:
        The string of address to convert

    :return:
        Address or False

    """
    try:
        return convert_to_address(address, **kwargs)
    except ValueError:
        return False


def is_ip_address(address: str) -> bool:
    """Returns a bool indicating if ``s`` is an IP address.

    :param address:
        The string to test.

    :return:
        A bool indicating if the string is an IP address or not.
    """
    return bool(maybe_get_address(ipaddress.ip_address, address))


def is_ip_network(address: str) -> bool:
    """Returns a bool indicating if ``s`` is an IPv4 or IPv6 network.

    :param address:
        The string to test.

    :return:
        A bool indicating if the string is a network or not.
    """
    return bool(maybe_get_address(ipaddress.ip_network, address, strict=False))


def is_ip_interface(address: str) -> bool:
    """Returns a bool indicating if ``s`` is an address with a prefix
    length, e.g. ``192.0.2.5/24``."""
    return "/" in address and bool(
        maybe_get_address(ipaddress.ip_interface, address)
    )


def is_valid_ifname(name: str) -> bool:
    """Returns a bool indicating if ``name`` is usable as a kernel network
    device name, and so also as a networkd file name component."""
    if not name or len(name) >= IFNAMSIZ or name in (".", ".."):
        return False
    return not any(c == "/" or c == ":" or c.isspace() for c in name)
