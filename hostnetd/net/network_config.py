# This file is part of hostnetd. See LICENSE file for license information.
"""Typed, immutable representation of the desired network state.

Every model type is a NamedTuple whose sequence fields are tuples, so a
NetworkConfig value can be handed out as a snapshot without copying.
The wire shape handled by from_dict()/to_dict() is the one used by the
network API and by seed files::

    interfaces:
      - name: eth-main
        hwaddr: aa:bb:cc:dd:ee:ff
        addresses: [dhcp4, slaac]
        routes:
          - to: 0.0.0.0/0
            via: dhcp4
    dns:
      hostname: host01
      domain: example.org
      nameservers: [192.0.2.53]
"""

import copy
import logging
from enum import Enum
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)

from hostnetd import util
from hostnetd.net import (
    VLAN_DEVICE_PREFIX,
    is_ip_address,
    is_ip_interface,
    is_ip_network,
    is_valid_ifname,
    is_valid_mac,
)

LOG = logging.getLogger(__name__)

MAX_VLAN_ID = 4094


class InvalidNetworkConfig(ValueError):
    """Raised when a network configuration fails semantic validation."""

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class AddressMethod(Enum):
    """Reserved address tokens requesting dynamic configuration."""

    DHCP4 = "dhcp4"
    DHCP6 = "dhcp6"
    SLAAC = "slaac"

    def __str__(self):  # pylint: disable=invalid-str-returned
        return self.value


class StaticAddress(NamedTuple):
    cidr: str

    def __str__(self):
        return self.cidr


Address = Union[AddressMethod, StaticAddress]


class GatewayMethod(Enum):
    """Reserved gateway tokens naming where a gateway is learned from."""

    DHCP4 = "dhcp4"
    SLAAC = "slaac"

    def __str__(self):  # pylint: disable=invalid-str-returned
        return self.value


class StaticGateway(NamedTuple):
    address: str

    def __str__(self):
        return self.address


Gateway = Union[GatewayMethod, StaticGateway]


def parse_address(token: str) -> Address:
    try:
        return AddressMethod(token)
    except ValueError:
        return StaticAddress(token)


def parse_gateway(token: str) -> Gateway:
    try:
        return GatewayMethod(token)
    except ValueError:
        return StaticGateway(token)


class RouteConfig(NamedTuple):
    to: str
    via: Gateway


class InterfaceConfig(NamedTuple):
    name: str
    hwaddr: str
    mtu: int = 0
    addresses: Tuple[Address, ...] = ()
    routes: Tuple[RouteConfig, ...] = ()
    vlan: int = 0
    lldp: bool = False


class BondConfig(NamedTuple):
    name: str
    hwaddr: str
    mode: str
    members: Tuple[str, ...]
    mtu: int = 0
    addresses: Tuple[Address, ...] = ()
    routes: Tuple[RouteConfig, ...] = ()
    vlan: int = 0
    lldp: bool = False


class VLANConfig(NamedTuple):
    name: str
    parent: str
    id: int
    mtu: int = 0
    addresses: Tuple[Address, ...] = ()
    routes: Tuple[RouteConfig, ...] = ()


class DNSConfig(NamedTuple):
    hostname: str = ""
    domain: str = ""
    search_domains: Tuple[str, ...] = ()
    nameservers: Tuple[str, ...] = ()


class NTPConfig(NamedTuple):
    timeservers: Tuple[str, ...] = ()


class ProxyConfig(NamedTuple):
    # (name, value) pairs, kept in the order they were given
    variables: Tuple[Tuple[str, str], ...] = ()

    def as_dict(self) -> Dict[str, str]:
        return dict(self.variables)


class NetworkConfig(NamedTuple):
    interfaces: Tuple[InterfaceConfig, ...] = ()
    bonds: Tuple[BondConfig, ...] = ()
    vlans: Tuple[VLANConfig, ...] = ()
    dns: Optional[DNSConfig] = None
    ntp: Optional[NTPConfig] = None
    proxy: Optional[ProxyConfig] = None


def has_no_devices(cfg: NetworkConfig) -> bool:
    """Return True when no interfaces, bonds or vlans are defined."""
    return not (cfg.interfaces or cfg.bonds or cfg.vlans)


def target_hostname(cfg: NetworkConfig) -> str:
    """Return the fully qualified hostname requested by ``cfg``.

    An empty string means no hostname is configured and the platform
    default should be used.
    """
    if not cfg.dns or not cfg.dns.hostname:
        return ""
    if cfg.dns.domain:
        return cfg.dns.hostname + "." + cfg.dns.domain
    return cfg.dns.hostname


def _addresses(tokens) -> Tuple[Address, ...]:
    return tuple(parse_address(str(t)) for t in tokens or ())


def _routes(routes) -> Tuple[RouteConfig, ...]:
    return tuple(
        RouteConfig(to=str(r["to"]), via=parse_gateway(str(r["via"])))
        for r in routes or ()
    )


def _strings(values) -> Tuple[str, ...]:
    return tuple(str(v) for v in values or ())


def _int(value) -> int:
    return int(value or 0)


def from_dict(data: Mapping[str, Any]) -> NetworkConfig:
    """Build a NetworkConfig from its wire representation.

    Structural problems (missing keys, wrong types) surface as KeyError,
    TypeError or ValueError; callers wanting friendly messages validate
    ``data`` with hostnetd.net.schema first.
    """
    interfaces = tuple(
        InterfaceConfig(
            name=i["name"],
            hwaddr=i["hwaddr"],
            mtu=_int(i.get("mtu")),
            addresses=_addresses(i.get("addresses")),
            routes=_routes(i.get("routes")),
            vlan=_int(i.get("vlan")),
            lldp=util.translate_bool(i.get("lldp", False)),
        )
        for i in data.get("interfaces") or ()
    )
    bonds = tuple(
        BondConfig(
            name=b["name"],
            hwaddr=b["hwaddr"],
            mode=b.get("mode") or "",
            members=_strings(b.get("members")),
            mtu=_int(b.get("mtu")),
            addresses=_addresses(b.get("addresses")),
            routes=_routes(b.get("routes")),
            vlan=_int(b.get("vlan")),
            lldp=util.translate_bool(b.get("lldp", False)),
        )
        for b in data.get("bonds") or ()
    )
    vlans = tuple(
        VLANConfig(
            name=v["name"],
            parent=v["parent"],
            id=_int(v.get("id")),
            mtu=_int(v.get("mtu")),
            addresses=_addresses(v.get("addresses")),
            routes=_routes(v.get("routes")),
        )
        for v in data.get("vlans") or ()
    )

    dns = None
    if data.get("dns") is not None:
        d = data["dns"]
        dns = DNSConfig(
            hostname=d.get("hostname") or "",
            domain=d.get("domain") or "",
            search_domains=_strings(d.get("search_domains")),
            nameservers=_strings(d.get("nameservers")),
        )

    ntp = None
    if data.get("ntp") is not None:
        ntp = NTPConfig(timeservers=_strings(data["ntp"].get("timeservers")))

    proxy = None
    if data.get("proxy") is not None:
        proxy = ProxyConfig(
            variables=tuple(
                (str(k), str(v))
                for k, v in data["proxy"].items()
                if v is not None
            )
        )

    return NetworkConfig(
        interfaces=interfaces,
        bonds=bonds,
        vlans=vlans,
        dns=dns,
        ntp=ntp,
        proxy=proxy,
    )


def _route_dicts(routes: Iterable[RouteConfig]) -> List[dict]:
    return [{"to": r.to, "via": str(r.via)} for r in routes]


def to_dict(cfg: NetworkConfig) -> Dict[str, Any]:
    """Return the wire representation of ``cfg``; inverse of from_dict()."""
    data: Dict[str, Any] = {
        "interfaces": [
            {
                "name": i.name,
                "hwaddr": i.hwaddr,
                "mtu": i.mtu,
                "addresses": [str(a) for a in i.addresses],
                "routes": _route_dicts(i.routes),
                "vlan": i.vlan,
                "lldp": i.lldp,
            }
            for i in cfg.interfaces
        ],
        "bonds": [
            {
                "name": b.name,
                "hwaddr": b.hwaddr,
                "mode": b.mode,
                "members": list(b.members),
                "mtu": b.mtu,
                "addresses": [str(a) for a in b.addresses],
                "routes": _route_dicts(b.routes),
                "vlan": b.vlan,
                "lldp": b.lldp,
            }
            for b in cfg.bonds
        ],
        "vlans": [
            {
                "name": v.name,
                "parent": v.parent,
                "id": v.id,
                "mtu": v.mtu,
                "addresses": [str(a) for a in v.addresses],
                "routes": _route_dicts(v.routes),
            }
            for v in cfg.vlans
        ],
    }
    if cfg.dns is not None:
        data["dns"] = {
            "hostname": cfg.dns.hostname,
            "domain": cfg.dns.domain,
            "search_domains": list(cfg.dns.search_domains),
            "nameservers": list(cfg.dns.nameservers),
        }
    if cfg.ntp is not None:
        data["ntp"] = {"timeservers": list(cfg.ntp.timeservers)}
    if cfg.proxy is not None:
        data["proxy"] = cfg.proxy.as_dict()
    return data


def merge_config(
    current: NetworkConfig, partial: Mapping[str, Any]
) -> Dict[str, Any]:
    """Overlay a partial update onto a copy of ``current``.

    Nested mappings are merged key by key; lists and scalars in ``partial``
    replace the current value and an explicit None clears it. ``current``
    itself is never modified. The merged wire representation is returned so
    it can be schema validated before conversion with from_dict().
    """
    base = copy.deepcopy(to_dict(current))
    return util.mergemanydict([partial, base])


def _validate_addressing(
    kind: str, name: str, addresses, routes, problems: List[str]
):
    for addr in addresses:
        if isinstance(addr, StaticAddress) and not is_ip_interface(addr.cidr):
            problems.append(
                "%s %s: invalid address %r" % (kind, name, addr.cidr)
            )
    for route in routes:
        if not is_ip_network(route.to):
            problems.append(
                "%s %s: invalid route destination %r" % (kind, name, route.to)
            )
        if isinstance(route.via, StaticGateway) and not is_ip_address(
            route.via.address
        ):
            problems.append(
                "%s %s: invalid route gateway %r"
                % (kind, name, route.via.address)
            )


def validate(cfg: NetworkConfig) -> None:
    """Check the semantic invariants of ``cfg``.

    @raises: InvalidNetworkConfig listing every problem found.
    """
    if has_no_devices(cfg):
        raise InvalidNetworkConfig(
            ["network configuration has no devices defined"]
        )

    problems: List[str] = []
    names: Dict[str, str] = {}
    macs: Dict[str, str] = {}

    def claim_name(kind, name, device=None):
        device = device or name
        if not name:
            problems.append("%s with empty name" % kind)
        elif not is_valid_ifname(device):
            problems.append(
                "%s %s: invalid device name %r" % (kind, name, device)
            )
        elif device in names:
            problems.append(
                "%s %s: name %s already used by %s"
                % (kind, name, device, names[device])
            )
        else:
            names[device] = "%s %s" % (kind, name)

    def claim_mac(owner, mac):
        if not is_valid_mac(mac):
            problems.append("%s: invalid hwaddr %r" % (owner, mac))
            return
        key = mac.lower()
        if key in macs:
            problems.append(
                "%s: hwaddr %s already used by %s" % (owner, mac, macs[key])
            )
        else:
            macs[key] = owner

    for i in cfg.interfaces:
        claim_name("interface", i.name)
        claim_mac("interface %s" % i.name, i.hwaddr)
        if i.mtu < 0:
            problems.append("interface %s: invalid mtu %s" % (i.name, i.mtu))
        if not 0 <= i.vlan <= MAX_VLAN_ID:
            problems.append("interface %s: invalid vlan %s" % (i.name, i.vlan))
        _validate_addressing(
            "interface", i.name, i.addresses, i.routes, problems
        )

    for b in cfg.bonds:
        claim_name("bond", b.name)
        claim_mac("bond %s" % b.name, b.hwaddr)
        if not b.members:
            problems.append("bond %s: no members defined" % b.name)
        for member in b.members:
            claim_mac("bond %s member" % b.name, member)
        if b.mtu < 0:
            problems.append("bond %s: invalid mtu %s" % (b.name, b.mtu))
        if not 0 <= b.vlan <= MAX_VLAN_ID:
            problems.append("bond %s: invalid vlan %s" % (b.name, b.vlan))
        _validate_addressing("bond", b.name, b.addresses, b.routes, problems)

    parents = {i.name for i in cfg.interfaces} | {b.name for b in cfg.bonds}
    for v in cfg.vlans:
        claim_name("vlan", v.name, VLAN_DEVICE_PREFIX + v.name)
        if v.parent not in parents:
            problems.append(
                "vlan %s: parent %r is not a configured interface or bond"
                % (v.name, v.parent)
            )
        if not 1 <= v.id <= MAX_VLAN_ID:
            problems.append("vlan %s: invalid id %s" % (v.name, v.id))
        if v.mtu < 0:
            problems.append("vlan %s: invalid mtu %s" % (v.name, v.mtu))
        _validate_addressing("vlan", v.name, v.addresses, v.routes, problems)

    if problems:
        raise InvalidNetworkConfig(problems)
