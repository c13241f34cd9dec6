"""Topology building blocks: node configs, endpoints, links and their checks."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

PREFIX = "clab"
HOST_NS_PATH = "__host"
DEFAULT_VETH_LINK_MTU = 9500
CLAB_OUI = "aa:c1:ab"
MAX_INTERFACE_NAME_LENGTH = 15

NODE_KIND_BRIDGE = "bridge"
NODE_KIND_OVS = "ovs-bridge"
NODE_KIND_HOST = "host"

KINDS = (
    "srl",
    "ceos",
    "crpd",
    "sonic-vs",
    "vr-sros",
    "vr-vmx",
    "vr-xrv",
    "vr-xrv9k",
    "vr-veos",
    "vr-csr",
    "vr-ros",
    "linux",
    "bridge",
    "ovs-bridge",
    "mysocketio",
    "host",
    "cvx",
)

_ROOT_NETNS_KINDS = frozenset({NODE_KIND_BRIDGE, NODE_KIND_OVS, NODE_KIND_HOST})


class TopologyError(ValueError):
    """Raised when a topology definition is malformed or inconsistent."""


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _quote_list(items: Iterable[str]) -> str:
    return "[" + " ".join(_quote(i) for i in items) + "]"


@dataclass
class NodeConfig:
    """Runtime configuration of a single lab node."""

    short_name: str = ""
    long_name: str = ""
    fqdn: str = ""
    kind: str = ""
    node_type: str = ""
    group: str = ""
    image: str = ""
    lab_dir: str = ""
    index: int = 0
    network_mode: str = ""
    ns_path: str = ""
    mgmt_ipv4_address: str = ""
    mgmt_ipv6_address: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    vars: dict[str, Any] = field(default_factory=dict)
    endpoints: list["Endpoint"] = field(default_factory=list, repr=False, compare=False)


@dataclass
class Endpoint:
    """One side of a link: a node and an interface on it."""

    node: NodeConfig
    endpoint_name: str
    mac: str = ""


@dataclass
class Link:
    """A point-to-point link between two endpoints."""

    a: Endpoint
    b: Endpoint
    mtu: int = DEFAULT_VETH_LINK_MTU
    labels: dict[str, str] = field(default_factory=dict)
    vars: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return (
            f"link [{self.a.node.short_name}:{self.a.endpoint_name}, "
            f"{self.b.node.short_name}:{self.b.endpoint_name}]"
        )


@dataclass
class LinkConfig:
    """A link as written in the topology file."""

    endpoints: list[str]
    labels: dict[str, str] = field(default_factory=dict)
    vars: dict[str, Any] = field(default_factory=dict)


def check_endpoint(e: str) -> None:
    """Validate the ``node:interface`` syntax of an endpoint string."""
    parts = e.split(":")
    if len(parts) != 2:
        raise TopologyError(f"malformed endpoint definition: {e}")
    if parts[1] == "eth0":
        raise TopologyError(
            "eth0 interface can't be used in the endpoint definition as it is "
            f"added by docker automatically: '{e}'"
        )


def verify_links(link_configs: Iterable[LinkConfig]) -> None:
    """Check endpoint syntax and that no endpoint appears twice."""
    seen: set[str] = set()
    dups: list[str] = []
    for lc in link_configs:
        for e in lc.endpoints:
            check_endpoint(e)
            if e in seen:
                dups.append(e)
            seen.add(e)
    if dups:
        raise TopologyError(
            f"endpoints {_quote_list(dups)} appeared more than once "
            "in the links section of the topology file"
        )


def gen_mac(oui: str = CLAB_OUI) -> str:
    """Return a random MAC address under the given three-octet OUI."""
    tail = ":".join(f"{random.randint(0, 255):02x}" for _ in range(3))
    return f"{oui}:{tail}"


def new_endpoint(spec: str, nodes: Mapping[str, NodeConfig]) -> Endpoint:
    """Build an endpoint from ``node:interface`` and register it on its node."""
    parts = spec.split(":")
    if len(parts) != 2:
        raise TopologyError(f"endpoint {spec} has wrong syntax")
    node_name, iface = parts
    if len(iface) > MAX_INTERFACE_NAME_LENGTH:
        raise TopologyError(
            f"interface '{iface}' name exceeds maximum length of "
            f"{MAX_INTERFACE_NAME_LENGTH} characters"
        )
    mac = gen_mac(CLAB_OUI)

    if node_name == "host":
        node = NodeConfig(kind=NODE_KIND_HOST, short_name="host", ns_path=HOST_NS_PATH)
        return Endpoint(node=node, endpoint_name=iface, mac=mac)
    if node_name == "mgmt-net":
        node = NodeConfig(kind=NODE_KIND_BRIDGE, short_name="mgmt-net")
        return Endpoint(node=node, endpoint_name=iface, mac=mac)

    node = nodes.get(node_name)
    if node is None:
        raise TopologyError(
            "not all nodes are specified in the 'topology.nodes' section or the "
            f"names don't match in the 'links.endpoints' section: {node_name}"
        )
    endpoint = Endpoint(node=node, endpoint_name=iface, mac=mac)
    node.endpoints.append(endpoint)
    return endpoint


def new_link(link_config: LinkConfig, nodes: Mapping[str, NodeConfig]) -> Link:
    """Build a link object out of its topology definition."""
    if len(link_config.endpoints) != 2:
        raise TopologyError(
            f"endpoint {_quote_list(link_config.endpoints)} has wrong syntax, "
            "unexpected number of items"
        )
    return Link(
        a=new_endpoint(link_config.endpoints[0], nodes),
        b=new_endpoint(link_config.endpoints[1], nodes),
        mtu=DEFAULT_VETH_LINK_MTU,
        labels=dict(link_config.labels),
        vars=dict(link_config.vars),
    )


def verify_root_netns_interface_uniqueness(links: Iterable[Link]) -> None:
    """Ensure interfaces living in the root namespace are uniquely named."""
    used: set[str] = set()
    for link in links:
        for e in (link.a, link.b):
            if e.node.kind not in _ROOT_NETNS_KINDS:
                continue
            if e.endpoint_name in used:
                raise TopologyError(
                    f"interface {e.endpoint_name} defined for node {e.node.short_name} "
                    "has already been used in other bridges, ovs-bridges or host "
                    "interfaces. Make sure that nodes of these kinds use unique "
                    "interface names"
                )
            used.add(e.endpoint_name)


def verify_host_network_mode(links: Iterable[Link]) -> None:
    """Ensure nodes in host network mode have no links."""
    for link in links:
        for e in (link.a, link.b):
            if e.node.network_mode == "host":
                name = e.node.short_name
                raise TopologyError(
                    f"node '{name}' is defined with host network mode, it can't have "
                    f"any links. Remove '{name}' node links from the topology definition"
                )