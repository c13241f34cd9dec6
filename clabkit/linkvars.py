"""Template variables for nodes and links: link names, link IPs and far-end data."""

from __future__ import annotations

import glob
import ipaddress
import logging
import os
from typing import Any, Iterable, Mapping, Optional, Union

from clabkit.topology import Link, NodeConfig

log = logging.getLogger(__name__)

VK_NODE_NAME = "clab_node"
VK_NODES = "clab_nodes"
VK_LINKS = "clab_links"
VK_FAR_END = "clab_far"
VK_ROLE = "clab_role"

VK_SYSTEM_IP = "clab_system_ip"
VK_LINK_IP = "clab_link_ip"
VK_LINK_NAME = "clab_link_name"
VK_LINK_NUM = "clab_link_num"

Interface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class LinkVarsError(ValueError):
    """Raised when link or node variables cannot be prepared."""


def _parse_prefix(text: str) -> Interface:
    if "/" not in text:
        raise ValueError(f"no '/' in prefix {text!r}")
    return ipaddress.ip_interface(text)


def _offset(ip: Address, delta: int) -> Optional[Address]:
    try:
        return ip + delta
    except ValueError:
        return None


def ip_far_end(prefix: Union[Interface, str]) -> Optional[Interface]:
    """Return the far-end address of a point-to-point prefix, or None if there is none."""
    iface = _parse_prefix(prefix) if isinstance(prefix, str) else prefix
    net = iface.network
    bits = net.prefixlen
    ip = iface.ip
    is4 = iface.version == 4

    def contains(addr: Optional[Address]) -> bool:
        return addr is not None and addr in net

    if is4 and bits == 32:
        return None

    nxt = _offset(ip, 1)
    prior = _offset(ip, -1)

    if is4 and bits <= 30:
        if not contains(nxt) or not contains(prior):
            return None
        if not contains(_offset(nxt, 1)):
            nxt = prior
    if not contains(nxt):
        nxt = prior
    if not contains(nxt):
        return None
    return ipaddress.ip_interface(f"{nxt}/{bits}")


def ip_far_end_s(text: str) -> str:
    """String form of :func:`ip_far_end`; an empty string when there is no far end."""
    try:
        iface = _parse_prefix(text)
    except ValueError as exc:
        raise LinkVarsError(f"invalid ip {text}") from exc
    far = ip_far_end(iface)
    return "" if far is None else str(far)


def ip_last_octet(ip: Any) -> int:
    """Return the last decimal group of an address (after the last '.' or ':')."""
    s = str(ip).split("/", 1)[0]
    i = s.rfind(".")
    if i < 0:
        i = s.rfind(":")
    tail = s[i + 1:]
    try:
        return int(tail)
    except ValueError:
        log.error("last octet %s from IP %s not a string", tail, s)
        return 0


def link_name(link: Link) -> tuple[str, str]:
    """Link names for both ends, built from far-end node names and optional link number."""
    suffix = f"_{link.vars[VK_LINK_NUM]}" if VK_LINK_NUM in link.vars else ""
    return (
        f"to_{link.b.node.short_name}{suffix}",
        f"to_{link.a.node.short_name}{suffix}",
    )


def link_ip(link: Link) -> tuple[str, str]:
    """Derive /31 link addresses from the system IPs of both nodes.

    Returns two empty strings when either node has no system IP.
    """
    ok_a = VK_SYSTEM_IP in link.a.node.vars
    ok_b = VK_SYSTEM_IP in link.b.node.vars
    if ok_a != ok_b:
        log.warning(
            "to auto-generate link IPs, a %s variable is required on all nodes",
            VK_SYSTEM_IP,
        )
    if not (ok_a and ok_b):
        return "", ""

    systems = []
    for node in (link.a.node, link.b.node):
        try:
            systems.append(_parse_prefix(str(node.vars[VK_SYSTEM_IP])))
        except ValueError as exc:
            raise LinkVarsError(
                f"no 'ip' on link & the '{VK_SYSTEM_IP}' of {node.short_name}: {exc}"
            ) from exc
    sys_a, sys_b = systems

    o4 = 0
    if VK_LINK_NUM in link.vars:
        value = link.vars[VK_LINK_NUM]
        try:
            o4 = int(str(value))
        except ValueError:
            log.warning("%s is expected to contain a number, got %s", VK_LINK_NUM, value)
        o4 *= 2

    o2, o3 = ip_last_octet(sys_a.ip), ip_last_octet(sys_b.ip)
    if o3 < o2:
        o2, o3, o4 = o3, o2, o4 + 1
    try:
        ip_a = _parse_prefix(f"1.{o2}.{o3}.{o4}/31")
    except ValueError as exc:
        raise LinkVarsError(f"could not create link IP from {VK_SYSTEM_IP}: {exc}") from exc
    far = ip_far_end(ip_a)
    return str(ip_a), "" if far is None else str(far)


def _fill_link_vars(link: Link, vars_a: dict, vars_b: dict) -> None:
    far_a: dict[str, Any] = {VK_NODE_NAME: link.b.node.short_name}
    far_b: dict[str, Any] = {VK_NODE_NAME: link.a.node.short_name}
    vars_a[VK_FAR_END] = far_a
    vars_b[VK_FAR_END] = far_b

    def add(key: str, v1: Any, v2: Any) -> None:
        vars_a[key] = v1
        far_a[key] = v2
        vars_b[key] = v2
        far_b[key] = v1

    for key, value in link.vars.items():
        if key in (VK_FAR_END, VK_NODE_NAME):
            raise LinkVarsError(f"{link}: reserved variable name '{key}' found")
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise LinkVarsError(
                    f"{link}: variable {key} should contain 2 elements, "
                    f"found {len(value)}: {value}"
                )
            add(key, value[0], value[1])
            continue
        if key == VK_LINK_IP:
            text = str(value)
            try:
                far = ip_far_end_s(text)
            except LinkVarsError as exc:
                raise LinkVarsError(f"{link}: {exc}") from exc
            add(key, text, far)
            continue
        add(key, value, value)

    for key, derive in ((VK_LINK_IP, link_ip), (VK_LINK_NAME, link_name)):
        if key in vars_a:
            continue
        try:
            a, b = derive(link)
        except LinkVarsError as exc:
            raise LinkVarsError(f"{link}: {exc}") from exc
        if a:
            add(key, a, b)


def prepare_link_vars(link: Link) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return the variables for the A and B ends of a link."""
    vars_a: dict[str, Any] = {}
    vars_b: dict[str, Any] = {}
    _fill_link_vars(link, vars_a, vars_b)
    return vars_a, vars_b


def _values(items: Union[Mapping[Any, Any], Iterable[Any]]) -> list:
    if isinstance(items, Mapping):
        return [items[k] for k in sorted(items, key=str)]
    return list(items)


def prepare_vars(
    nodes: Union[Mapping[str, NodeConfig], Iterable[NodeConfig]],
    links: Union[Mapping[int, Link], Iterable[Link]],
) -> dict[str, dict[str, Any]]:
    """Prepare template variables for every node, including its links and all nodes."""
    res: dict[str, dict[str, Any]] = {}
    for node in _values(nodes):
        name = node.short_name
        node_vars: dict[str, Any] = {VK_NODE_NAME: name}
        for key, value in node.vars.items():
            if key in (VK_NODES, VK_NODE_NAME):
                log.warning(
                    "the variable %s on %s will be ignored, it hides other nodes",
                    VK_NODES,
                    name,
                )
                continue
            node_vars[key] = value
        node_vars[VK_LINKS] = []
        node_vars.setdefault(VK_ROLE, node.kind)
        res[name] = node_vars

    for idx, link in enumerate(_values(links)):
        vars_a: dict[str, Any] = {}
        vars_b: dict[str, Any] = {}
        try:
            _fill_link_vars(link, vars_a, vars_b)
        except LinkVarsError as exc:
            log.error("cannot prepare link vars for %d. %s: %s", idx, link, exc)
        for end, end_vars in ((link.a, vars_a), (link.b, vars_b)):
            target = res.get(end.node.short_name)
            if target is not None:
                target[VK_LINKS].append(end_vars)

    all_nodes = {name: dict(node_vars) for name, node_vars in res.items()}
    for node_vars in res.values():
        node_vars[VK_NODES] = all_nodes
    return res


def get_template_names_in_dirs(paths: Iterable[str]) -> list[str]:
    """List template names (``<name>__<role>.tmpl``) found directly in the given dirs."""
    names: list[str] = []
    for p in paths:
        for fn in sorted(glob.glob(os.path.join(p, "*__*.tmpl"))):
            name = os.path.basename(fn).split("__")[0]
            if names and names[-1] == name:
                continue
            names.append(name)
    return names