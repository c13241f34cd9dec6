"""Maintenance of lab entries in the hosts file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable

HOSTS_FILENAME = "/etc/hosts"
ENTRY_PREFIX = "###### CLAB-{}-START ######"
ENTRY_POSTFIX = "###### CLAB-{}-END ######"


class HostsFileError(Exception):
    """Raised when the hosts file cannot be updated safely."""


@dataclass
class NetworkSettings:
    """Management network addressing of a container."""

    is_set: bool = False
    ipv4_addr: str = ""
    ipv4_plen: int = 0
    ipv6_addr: str = ""
    ipv6_plen: int = 0


@dataclass
class GenericContainer:
    """Runtime-independent view of a container."""

    names: list[str] = field(default_factory=list)
    id: str = ""
    short_id: str = ""
    image: str = ""
    state: str = ""
    status: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    network_settings: NetworkSettings = field(default_factory=NetworkSettings)


def generate_hosts_entries(containers: Iterable[GenericContainer], labname: str) -> str:
    """Build the hosts file block with address/name pairs of the containers."""
    v4_lines = [ENTRY_PREFIX.format(labname) + "\n"]
    v6_lines = []
    for cont in containers:
        if not cont.names:
            continue
        ns = cont.network_settings
        if not ns.is_set:
            continue
        host = cont.names[0].lstrip("/")
        if ns.ipv4_addr:
            v4_lines.append(f"{ns.ipv4_addr}\t{host}\n")
        if ns.ipv6_addr:
            v6_lines.append(f"{ns.ipv6_addr}\t{host}\n")
    return "".join(v4_lines + v6_lines) + ENTRY_POSTFIX.format(labname) + "\n"


def append_hosts_file_entries(
    containers: Iterable[GenericContainer],
    labname: str,
    filename: str = HOSTS_FILENAME,
) -> None:
    """Replace the lab block in the hosts file with fresh entries."""
    if not labname:
        raise HostsFileError("missing lab name")
    if not os.path.exists(filename):
        with open(filename, "w", encoding="utf-8") as f:
            f.write("127.0.0.1\tlocalhost")
    # clear leftovers of a lab that was not destroyed properly
    delete_entries_from_hosts_file(labname, filename)
    data = generate_hosts_entries(containers, labname)
    with open(filename, "a", encoding="utf-8", newline="") as f:
        f.write(data)


def delete_entries_from_hosts_file(labname: str, filename: str = HOSTS_FILENAME) -> None:
    """Remove the lab block from the hosts file."""
    if not labname:
        raise HostsFileError("missing containerlab name")
    prefix = ENTRY_PREFIX.format(labname)
    postfix = ENTRY_POSTFIX.format(labname)
    with open(filename, "r+", encoding="utf-8", newline="") as f:
        output = []
        skipping = False
        for line in f.read().splitlines(keepends=True):
            # an unterminated last line is not carried over
            if not line.endswith("\n"):
                break
            stripped = line.strip()
            if stripped == postfix:
                skipping = False
                continue
            if stripped == prefix or skipping:
                skipping = True
                continue
            output.append(line)
        if skipping:
            raise HostsFileError(
                f"issue cleaning up {filename} file. Please do so manually"
            )
        f.seek(0)
        f.truncate()
        f.write("".join(output))