"""Parsing of endpoint references for ad-hoc veth creation."""

from __future__ import annotations

from dataclasses import dataclass

SUPPORTED_KINDS = ("ovs-bridge", "bridge", "host")


@dataclass(frozen=True)
class VethEndpoint:
    """Where one side of a veth pair attaches: node kind, node name, interface."""

    kind: str
    node: str
    iface: str


def parse_veth_endpoint(s: str) -> VethEndpoint:
    """Parse ``<container>:<iface>`` or ``<kind>:<name>:<iface>``."""
    parts = s.split(":")
    if len(parts) == 2:
        node, iface = parts
        kind = "host" if node == "host" else "container"
        return VethEndpoint(kind=kind, node=node, iface=iface)
    if len(parts) == 3:
        kind, node, iface = parts
        if kind not in SUPPORTED_KINDS:
            quoted = " ".join(f'"{k}"' for k in SUPPORTED_KINDS)
            raise ValueError(
                f"node type {kind} is not supported, supported nodes are [{quoted}]"
            )
        return VethEndpoint(kind=kind, node=node, iface=iface)
    raise ValueError("malformed veth endpoint reference")