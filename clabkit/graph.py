"""Graphviz rendering of a lab topology."""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from typing import Iterable, Mapping, Optional

from clabkit.topology import Link, NodeConfig

log = logging.getLogger(__name__)

_PLAIN_ID = re.compile(r"[A-Za-z_\u0080-\uffff][A-Za-z0-9_\u0080-\uffff]*")
_NUMERAL = re.compile(r"-?(\.\d+|\d+(\.\d*)?)")


def _dot_id(text: str) -> str:
    if _PLAIN_ID.fullmatch(text) or _NUMERAL.fullmatch(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _attrs(attr: Mapping[str, str]) -> str:
    return ", ".join(f"{k}={_dot_id(attr[k])}" for k in sorted(attr))


def _node_attrs(node_name: str, node: NodeConfig) -> dict[str, str]:
    attr = {
        "color": "red",
        "style": "filled",
        "fillcolor": "red",
        "label": node_name,
        "xlabel": node.kind,
    }
    if node.group.strip():
        attr["group"] = node.group
        if "bb" in node.group:
            attr.update(fillcolor="blue", color="blue", fontcolor="white")
        elif "srl" in node.kind:
            attr.update(fillcolor="green", color="green", fontcolor="black")
    return attr


def build_dot(name: str, nodes: Mapping[str, NodeConfig], links: Iterable[Link]) -> str:
    """Render the topology as an undirected Graphviz graph."""
    lines = [f"graph {_dot_id(name)} {{"]
    for node_name in sorted(nodes):
        node = nodes[node_name]
        lines.append(f"\t{_dot_id(node.short_name)} [{_attrs(_node_attrs(node_name, node))}];")
    for link in links:
        a, b = link.a.node.short_name, link.b.node.short_name
        color = "blue" if "client" in a or "client" in b else "black"
        lines.append(f"\t{_dot_id(a)}--{_dot_id(b)} [{_attrs({'color': color})}];")
    lines.append("}")
    return "\n".join(lines) + "\n"


def command_exists(cmd: str) -> bool:
    """Tell whether an executable is available on PATH."""
    found = shutil.which(cmd) is not None
    log.debug("executable %s %s", cmd, "exists!" if found else "doesn't exist!")
    return found


def generate_png_from_dot(dotfile: str | os.PathLike, outfile: str | os.PathLike) -> None:
    """Render a PNG image from a dot file with the ``dot`` tool."""
    try:
        subprocess.run(
            ["dot", "-o", os.fspath(outfile), "-Tpng", os.fspath(dotfile)],
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        message = (
            f"failed to generate png ({outfile}) from dot file ({dotfile}), "
            f"with error ({exc})"
        )
        log.error(message)
        raise RuntimeError(message) from exc


def generate_graph(
    name: str,
    lab_dir: str | os.PathLike,
    nodes: Mapping[str, NodeConfig],
    links: Iterable[Link],
) -> tuple[str, Optional[str]]:
    """Write ``<lab_dir>/graph/<name>.dot`` and, if ``dot`` is installed, a PNG.

    Returns the paths of the dot file and of the PNG (None when not created).
    """
    log.info("Generating lab graph...")
    graph_dir = os.path.join(os.fspath(lab_dir), "graph")
    os.makedirs(graph_dir, mode=0o755, exist_ok=True)
    dotfile = os.path.join(graph_dir, f"{name}.dot")
    with open(dotfile, "w", encoding="utf-8") as f:
        f.write(build_dot(name, nodes, links))
    log.info("Created %s", dotfile)

    if not command_exists("dot"):
        return dotfile, None
    pngfile = os.path.join(graph_dir, f"{name}.png")
    generate_png_from_dot(dotfile, pngfile)
    log.info("Created %s", pngfile)
    return dotfile, pngfile