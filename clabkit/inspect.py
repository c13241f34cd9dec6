"""Summaries of deployed lab containers as tables or JSON."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from typing import Iterable, Optional

from tabulate import tabulate

from clabkit.hostsfile import GenericContainer

_JSON_KEYS = {
    "lab_name": "lab_name",
    "lab_path": "labPath",
    "name": "name",
    "container_id": "container_id",
    "image": "image",
    "kind": "kind",
    "group": "group",
    "state": "state",
    "ipv4_address": "ipv4_address",
    "ipv6_address": "ipv6_address",
}

_HEADER = (
    "Lab Name",
    "Name",
    "Container ID",
    "Image",
    "Kind",
    "Group",
    "State",
    "IPv4 Address",
    "IPv6 Address",
)

_MERGED_COLUMNS = (1, 2)


@dataclass
class ContainerDetails:
    """One row of the lab inspection output."""

    lab_name: str = ""
    lab_path: str = ""
    name: str = ""
    container_id: str = ""
    image: str = ""
    kind: str = ""
    group: str = ""
    state: str = ""
    ipv4_address: str = ""
    ipv6_address: str = ""

    def to_dict(self) -> dict[str, str]:
        """Mapping with the JSON field names, empty fields left out."""
        return {
            _JSON_KEYS[f.name]: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name)
        }


def container_ipv4(ctr: GenericContainer) -> str:
    """Management IPv4 address with prefix length, ``NA`` if unassigned."""
    ns = ctr.network_settings
    if not ns.is_set:
        return ""
    if not ns.ipv4_addr:
        return "NA"
    return f"{ns.ipv4_addr}/{ns.ipv4_plen}"


def container_ipv6(ctr: GenericContainer) -> str:
    """Management IPv6 address with prefix length, ``NA`` if unassigned."""
    ns = ctr.network_settings
    if not ns.is_set:
        return ""
    if not ns.ipv6_addr:
        return "NA"
    return f"{ns.ipv6_addr}/{ns.ipv6_plen}"


def _relative_topo_path(topo: str, cwd: str) -> str:
    if not topo or os.path.isabs(topo) != os.path.isabs(cwd):
        return ""
    return os.path.relpath(topo, cwd)


def collect_details(
    containers: Iterable[GenericContainer], cwd: Optional[str] = None
) -> list[ContainerDetails]:
    """Turn containers into details rows sorted by lab name and container name."""
    base = cwd if cwd is not None else os.getcwd()
    details = []
    for cont in containers:
        details.append(
            ContainerDetails(
                lab_name=cont.labels.get("containerlab", ""),
                lab_path=_relative_topo_path(cont.labels.get("clab-topo-file", ""), base),
                name=cont.names[0].lstrip("/") if cont.names else "",
                container_id=cont.short_id,
                image=cont.image,
                kind=cont.labels.get("clab-node-kind", ""),
                group=cont.labels.get("clab-node-group", ""),
                state=cont.state,
                ipv4_address=container_ipv4(cont),
                ipv6_address=container_ipv6(cont),
            )
        )
    details.sort(key=lambda d: (d.lab_name, d.name))
    return details


def to_table_data(details: Iterable[ContainerDetails], all_labs: bool = False) -> list[list[str]]:
    """Rows for the summary table; lab path and name are included for all labs."""
    rows = []
    for i, d in enumerate(details, start=1):
        tail = [
            d.name,
            d.container_id,
            d.image,
            d.kind,
            d.group,
            d.state,
            d.ipv4_address,
            d.ipv6_address,
        ]
        head = [str(i), d.lab_path, d.lab_name] if all_labs else [str(i)]
        rows.append(head + tail)
    return rows


def render_table(details: Iterable[ContainerDetails], all_labs: bool = False) -> str:
    """Render the summary table, merging repeated cells in the lab columns."""
    rows = to_table_data(details, all_labs)
    previous: dict[int, str] = {}
    for row in rows:
        for col in _MERGED_COLUMNS:
            value = row[col]
            if col in previous and previous[col] == value:
                row[col] = ""
            else:
                previous[col] = value
    if all_labs:
        header = ["#", "Topo Path", *_HEADER]
    else:
        header = ["#", *_HEADER[1:]]
    return tabulate(rows, headers=header, tablefmt="grid", disable_numparse=True)


def render_json(details: Iterable[ContainerDetails]) -> str:
    """Render details as an indented JSON list."""
    return json.dumps([d.to_dict() for d in details], indent=2)