"""Path resolution, container name parsing and host resource checks."""

from __future__ import annotations

import logging
import os
from typing import Iterable

from clabkit.topology import TopologyError

log = logging.getLogger(__name__)

NODE_DIR_PLACEHOLDER = "$nodeDir"
CPUINFO_PATH = "/proc/cpuinfo"


def resolve_path(p: str) -> str:
    """Expand a leading ``~`` to the home directory or make the path absolute."""
    if not p:
        return ""
    if p.startswith("~"):
        if len(p) > 1 and p[1] not in ("/", os.sep):
            raise ValueError("cannot expand user-specific home dir")
        return os.path.expanduser(p)
    return os.path.abspath(p)


def resolve_bind_paths(binds: Iterable[str], node_dir: str) -> list[str]:
    """Resolve the host part of ``/hostpath:/remotepath(:options)`` bind strings.

    ``$nodeDir`` in the host path is replaced with ``node_dir``; the resolved
    host path must exist.
    """
    resolved = []
    for bind in binds:
        elems = bind.split(":")
        host_path = resolve_path(elems[0].replace(NODE_DIR_PLACEHOLDER, node_dir))
        try:
            os.stat(host_path)
        except OSError as exc:
            raise TopologyError(f"failed to verify bind path: {exc}") from exc
        elems[0] = host_path
        resolved.append(":".join(elems))
    return resolved


def get_short_name(lab_name: str, container_name: str) -> str:
    """Return the node short name from a ``clab-<lab>-<node>`` container name."""
    parts = container_name.split(f"-{lab_name}-")
    if len(parts) != 2:
        raise ValueError(f'failed to parse container name "{container_name}"')
    return parts[1]


def virtualization_supported(cpuinfo_path: str = CPUINFO_PATH) -> bool:
    """Tell whether the CPU flags listed in ``cpuinfo_path`` include vmx or svm."""
    with open(cpuinfo_path, encoding="utf-8", errors="replace") as f:
        return any("vmx" in line or "svm" in line for line in f)


def _free_memory_bytes() -> int:
    try:
        return os.sysconf("SC_AVPHYS_PAGES") * os.sysconf("SC_PAGE_SIZE")
    except (ValueError, OSError, AttributeError):
        return 0


def check_resources() -> list[str]:
    """Check vCPU count and free memory of the host; return and log warnings."""
    warnings = []
    vcpu = os.cpu_count() or 1
    log.debug("Number of vcpu: %d", vcpu)
    if vcpu < 2:
        warnings.append(
            "Only 1 vcpu detected on this container host. "
            "Most containerlab nodes require at least 2 vcpu"
        )
    free_mem_g = _free_memory_bytes() // 1024 // 1024 // 1024
    if free_mem_g < 1:
        warnings.append(
            "it appears that container host has low memory available: "
            f"~{free_mem_g}Gi. This might lead to runtime errors. "
            "Consider freeing up more memory."
        )
    for message in warnings:
        log.warning(message)
    return warnings