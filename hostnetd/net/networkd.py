# This file is part of hostnetd. See LICENSE file for license information.
"""Render a NetworkConfig into systemd-networkd configuration files.

systemd-networkd reads files from its configuration directories in lexical
order and the first matching .network file wins for a link, so the numeric
prefixes below encode priority::

    00-  .link     interface name binding by permanent MAC
    01-  .link     bond member name binding by permanent MAC
    10-  .netdev   VLAN filtering bridge backing an interface
    11-  .netdev   bond device and the bridge on top of it
    12-  .netdev   VLAN device
    20-  .network  interface addressing, and raw link -> bridge binding
    21-  .network  bond addressing, bond -> bridge and member -> bond bindings
    22-  .network  VLAN addressing

https://www.freedesktop.org/software/systemd/man/latest/systemd.link.html
https://www.freedesktop.org/software/systemd/man/latest/systemd.netdev.html
https://www.freedesktop.org/software/systemd/man/latest/systemd.network.html
"""

import logging
import os
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from hostnetd import settings, subp, util
from hostnetd.net import VLAN_DEVICE_PREFIX, strip_hwaddr
from hostnetd.net.network_config import (
    Address,
    AddressMethod,
    DNSConfig,
    GatewayMethod,
    NetworkConfig,
    NTPConfig,
    RouteConfig,
    StaticAddress,
    VLANConfig,
)

LOG = logging.getLogger(__name__)

GATEWAY_ALIASES = {
    GatewayMethod.DHCP4: "_dhcp4",
    GatewayMethod.SLAAC: "_ipv6ra",
}


class NetworkdFile(NamedTuple):
    name: str
    contents: str


class UnitFile:
    """An ordered list of ini style sections.

    Unlike a ConfigParser, section names may repeat and both section and
    key order are preserved exactly as added.
    """

    def __init__(self):
        self.sections: List[Tuple[str, List[str]]] = []

    def add_section(self, name: str, lines: Sequence[str] = ()) -> List[str]:
        body = list(lines)
        self.sections.append((name, body))
        return body

    def render(self) -> str:
        return "\n".join(
            "[%s]\n%s" % (name, "".join(line + "\n" for line in body))
            for name, body in self.sections
        )


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _mtu_lines(mtu: int) -> List[str]:
    return ["MTUBytes=%d" % mtu] if mtu else []


def link_name(hwaddr: str) -> str:
    return "en" + strip_hwaddr(hwaddr)


def bond_device_name(hwaddr: str) -> str:
    return "bn" + strip_hwaddr(hwaddr)


def vlan_device_name(vlan: VLANConfig) -> str:
    return VLAN_DEVICE_PREFIX + vlan.name


def device_names(cfg: NetworkConfig) -> Dict[str, List[str]]:
    """Return the name of every routable device, by category.

    Interfaces and bonds are reached through the bridge carrying their
    logical name, VLANs through their vlan device.
    """
    return {
        "interfaces": [i.name for i in cfg.interfaces],
        "bonds": [b.name for b in cfg.bonds],
        "vlans": [vlan_device_name(v) for v in cfg.vlans],
    }


def _link_file(prefix: str, hwaddr: str) -> NetworkdFile:
    unit = UnitFile()
    unit.add_section("Match", ["PermanentMACAddress=%s" % hwaddr])
    # An empty NamePolicy= stops udev from applying its own naming scheme.
    unit.add_section("Link", ["NamePolicy=", "Name=%s" % link_name(hwaddr)])
    return NetworkdFile(
        "%s-%s.link" % (prefix, link_name(hwaddr)), unit.render()
    )


def generate_link_files(cfg: NetworkConfig) -> List[NetworkdFile]:
    ret = [_link_file("00", i.hwaddr) for i in cfg.interfaces]
    for b in cfg.bonds:
        ret.extend(_link_file("01", member) for member in b.members)
    return ret


def _bridge_netdev(name: str, hwaddr: str, mtu: int) -> str:
    unit = UnitFile()
    unit.add_section(
        "NetDev",
        ["Name=%s" % name, "Kind=bridge", "MACAddress=%s" % hwaddr]
        + _mtu_lines(mtu),
    )
    unit.add_section("Bridge", ["VLANFiltering=true"])
    return unit.render()


def generate_netdev_files(cfg: NetworkConfig) -> List[NetworkdFile]:
    ret = []

    # Create a bridge device for each interface.
    for i in cfg.interfaces:
        ret.append(
            NetworkdFile(
                "10-br%s.netdev" % strip_hwaddr(i.hwaddr),
                _bridge_netdev(i.name, i.hwaddr, i.mtu),
            )
        )

    # Create bond and bridge devices for each bond.
    for b in cfg.bonds:
        stripped = strip_hwaddr(b.hwaddr)
        bond = UnitFile()
        bond.add_section(
            "NetDev",
            [
                "Name=%s" % bond_device_name(b.hwaddr),
                "Kind=bond",
                "MACAddress=%s" % b.hwaddr,
            ]
            + _mtu_lines(b.mtu),
        )
        bond.add_section("Bond", ["Mode=%s" % b.mode])
        ret.append(NetworkdFile("11-bn%s.netdev" % stripped, bond.render()))
        ret.append(
            NetworkdFile(
                "11-br%s.netdev" % stripped,
                _bridge_netdev(b.name, b.hwaddr, b.mtu),
            )
        )

    for v in cfg.vlans:
        unit = UnitFile()
        unit.add_section(
            "NetDev",
            ["Name=%s" % vlan_device_name(v), "Kind=vlan"]
            + _mtu_lines(v.mtu),
        )
        unit.add_section("VLAN", ["Id=%d" % v.id])
        ret.append(
            NetworkdFile("12-%s.netdev" % vlan_device_name(v), unit.render())
        )

    return ret


def generate_network_section(
    dns: Optional[DNSConfig], ntp: Optional[NTPConfig]
) -> List[str]:
    """Return the DNS and NTP lines shared by every [Network] section."""
    ret = []
    if dns:
        if dns.search_domains:
            ret.append("Domains=%s" % " ".join(dns.search_domains))
        ret.extend("DNS=%s" % ns for ns in dns.nameservers)
    if ntp:
        ret.extend("NTP=%s" % ts for ts in ntp.timeservers)
    return ret


def process_addresses(addresses: Sequence[Address]) -> List[str]:
    ret = []
    if addresses:
        ret.append("LinkLocalAddressing=ipv6")
    else:
        # Let the link come up even before anything is plugged into it.
        ret.append("LinkLocalAddressing=no")
        ret.append("ConfigureWithoutCarrier=yes")

    methods = set()
    for addr in addresses:
        if isinstance(addr, StaticAddress):
            ret.append("Address=%s" % addr.cidr)
        else:
            methods.add(addr)

    ret.append(
        "IPv6AcceptRA=%s" % _bool(AddressMethod.SLAAC in methods)
    )

    dhcp4 = AddressMethod.DHCP4 in methods
    dhcp6 = AddressMethod.DHCP6 in methods
    if dhcp4 and dhcp6:
        ret.append("DHCP=yes")
    elif dhcp4:
        ret.append("DHCP=ipv4")
    elif dhcp6:
        ret.append("DHCP=ipv6")

    return ret


def process_routes(unit: UnitFile, routes: Sequence[RouteConfig]):
    for route in routes:
        gateway = GATEWAY_ALIASES.get(route.via, str(route.via))
        unit.add_section(
            "Route", ["Gateway=%s" % gateway, "Destination=%s" % route.to]
        )


def _addressing_network(
    cfg: NetworkConfig,
    match_name: str,
    addresses: Sequence[Address],
    routes: Sequence[RouteConfig],
    pvid: int = 0,
    extra_network: Sequence[str] = (),
) -> str:
    unit = UnitFile()
    unit.add_section("Match", ["Name=%s" % match_name])
    unit.add_section(
        "DHCP", ["ClientIdentifier=mac", "RouteMetric=100", "UseMTU=true"]
    )
    unit.add_section(
        "Network",
        list(extra_network)
        + generate_network_section(cfg.dns, cfg.ntp)
        + process_addresses(addresses),
    )
    process_routes(unit, routes)
    if pvid:
        # Trunk every tag through the bridge, untagged traffic uses the PVID.
        unit.add_section("BridgeVLAN", ["VLAN=1-4094", "PVID=%d" % pvid])
    return unit.render()


def _vlan_lines(cfg: NetworkConfig, parent: str) -> List[str]:
    return [
        "VLAN=%s" % vlan_device_name(v)
        for v in cfg.vlans
        if v.parent == parent
    ]


def generate_network_files(cfg: NetworkConfig) -> List[NetworkdFile]:
    ret = []

    for i in cfg.interfaces:
        stripped = strip_hwaddr(i.hwaddr)
        ret.append(
            NetworkdFile(
                "20-%s.network" % i.name,
                _addressing_network(
                    cfg,
                    i.name,
                    i.addresses,
                    i.routes,
                    pvid=i.vlan,
                    extra_network=_vlan_lines(cfg, i.name),
                ),
            )
        )

        port = UnitFile()
        port.add_section("Match", ["Name=%s" % link_name(i.hwaddr)])
        port.add_section(
            "Network",
            [
                "Bridge=%s" % i.name,
                "LLDP=%s" % _bool(i.lldp),
                "EmitLLDP=%s" % _bool(i.lldp),
            ],
        )
        ret.append(NetworkdFile("20-br%s.network" % stripped, port.render()))

    for b in cfg.bonds:
        stripped = strip_hwaddr(b.hwaddr)
        ret.append(
            NetworkdFile(
                "21-%s.network" % b.name,
                _addressing_network(
                    cfg,
                    b.name,
                    b.addresses,
                    b.routes,
                    pvid=b.vlan,
                    extra_network=_vlan_lines(cfg, b.name),
                ),
            )
        )

        port = UnitFile()
        port.add_section("Match", ["Name=%s" % bond_device_name(b.hwaddr)])
        port.add_section("Network", ["Bridge=%s" % b.name])
        ret.append(NetworkdFile("21-br%s.network" % stripped, port.render()))

        for index, member in enumerate(b.members):
            slave = UnitFile()
            slave.add_section("Match", ["Name=%s" % link_name(member)])
            slave.add_section(
                "Network",
                [
                    "Bond=%s" % bond_device_name(b.hwaddr),
                    "LLDP=%s" % _bool(b.lldp),
                    "EmitLLDP=%s" % _bool(b.lldp),
                ],
            )
            ret.append(
                NetworkdFile(
                    "21-bn%s-dev%d.network" % (stripped, index),
                    slave.render(),
                )
            )

    for v in cfg.vlans:
        ret.append(
            NetworkdFile(
                "22-%s.network" % vlan_device_name(v),
                _addressing_network(
                    cfg, vlan_device_name(v), v.addresses, v.routes
                ),
            )
        )

    return ret


def generate_timesync_contents(ntp: Optional[NTPConfig]) -> str:
    """Return a timesyncd drop-in, or "" when no time servers are set."""
    if not ntp or not ntp.timeservers:
        return ""
    return "[Time]\nFallbackNTP=" + " ".join(ntp.timeservers) + "\n"


def render_network_config(cfg: NetworkConfig) -> List[NetworkdFile]:
    """Return every .link, .netdev and .network file for ``cfg``."""
    return (
        generate_link_files(cfg)
        + generate_netdev_files(cfg)
        + generate_network_files(cfg)
    )


class Renderer:
    """
    Renders network configuration into the systemd-networkd runtime
    directory (/run/systemd/network by default) and the systemd-timesyncd
    drop-in.

    Every render wipes the directory first, so files of devices removed
    from the configuration never linger.
    """

    def __init__(self, config=None):
        if not config:
            config = {}
        self.network_conf_dir = config.get(
            "network_conf_dir", settings.CFG_BUILTIN["network_conf_dir"]
        )
        self.timesync_conf_file = config.get(
            "timesync_conf_file", settings.CFG_BUILTIN["timesync_conf_file"]
        )

    def render(self, cfg: NetworkConfig) -> List[str]:
        """Write the configuration for ``cfg``, returning written paths."""
        if os.path.isdir(self.network_conf_dir):
            util.del_dir(self.network_conf_dir)
        util.ensure_dir(self.network_conf_dir, mode=0o755)

        written = []
        for f in render_network_config(cfg):
            path = os.path.join(self.network_conf_dir, f.name)
            util.write_file(path, f.contents, 0o644, ensure_dir_exists=False)
            written.append(path)

        timesync = generate_timesync_contents(cfg.ntp)
        if timesync:
            util.write_file(self.timesync_conf_file, timesync, 0o644)
            written.append(self.timesync_conf_file)
        else:
            # Drop any fallback servers left from a previous configuration.
            util.del_file(self.timesync_conf_file)

        LOG.debug(
            "Rendered %d networkd files to %s",
            len(written),
            self.network_conf_dir,
        )
        return written


def available() -> bool:
    expected = ["networkctl", "systemctl", "udevadm"]
    search = ["/usr/bin", "/usr/sbin", "/bin", "/sbin"]
    for p in expected:
        if not subp.which(p, search=search):
            return False
    return True
