import os
import subprocess
import sys
from unittest import mock

import pytest

from clabkit.graph import build_dot, command_exists, generate_graph, generate_png_from_dot
from clabkit.topology import Endpoint, Link, NodeConfig


def _lab():
    nodes = {
        "leaf1": NodeConfig(short_name="leaf1", kind="srl", group="leafs"),
        "spine1": NodeConfig(short_name="spine1", kind="srl", group="bb"),
        "client1": NodeConfig(short_name="client1", kind="linux"),
    }
    links = [
        Link(a=Endpoint(nodes["leaf1"], "e1-1"), b=Endpoint(nodes["spine1"], "e1-1")),
        Link(a=Endpoint(nodes["client1"], "eth1"), b=Endpoint(nodes["leaf1"], "e1-2")),
    ]
    return nodes, links


def test_dot_structure():
    nodes, links = _lab()
    dot = build_dot("topo1", nodes, links)
    lines = dot.splitlines()
    assert lines[0] == "graph topo1 {"
    assert lines[-1] == "}"
    assert dot.count("--") == len(links)


def test_node_colors_follow_groups_and_kinds():
    nodes, links = _lab()
    dot = build_dot("topo1", nodes, links)
    spine = next(l for l in dot.splitlines() if l.strip().startswith("spine1 ["))
    leaf = next(l for l in dot.splitlines() if l.strip().startswith("leaf1 ["))
    client = next(l for l in dot.splitlines() if l.strip().startswith("client1 ["))
    assert "fillcolor=blue" in spine and "fontcolor=white" in spine
    assert "fillcolor=green" in leaf and "group=leafs" in leaf
    assert "fillcolor=red" in client and "group=" not in client


def test_client_links_are_blue():
    nodes, links = _lab()
    dot = build_dot("topo1", nodes, links)
    assert "leaf1--spine1 [color=black];" in dot
    assert "client1--leaf1 [color=blue];" in dot


def test_names_with_dashes_are_quoted():
    node = NodeConfig(short_name="node-1", kind="linux")
    dot = build_dot("my-lab", {"node-1": node}, [])
    assert dot.startswith('graph "my-lab" {')
    assert '"node-1" [' in dot


def test_command_exists():
    assert command_exists(sys.executable) is True
    assert command_exists("surely-missing-tool-xyz") is False


def test_generate_graph_without_dot_tool(tmp_path):
    nodes, links = _lab()
    with mock.patch("clabkit.graph.shutil.which", return_value=None):
        dotfile, pngfile = generate_graph("topo1", tmp_path, nodes, links)
    assert pngfile is None
    assert dotfile == os.path.join(str(tmp_path), "graph", "topo1.dot")
    with open(dotfile, encoding="utf-8") as f:
        assert f.read() == build_dot("topo1", nodes, links)


def test_png_generation_failure_raises(tmp_path):
    err = subprocess.CalledProcessError(1, "dot")
    with mock.patch("clabkit.graph.subprocess.run", side_effect=err):
        with pytest.raises(RuntimeError, match="failed to generate png"):
            generate_png_from_dot(tmp_path / "a.dot", tmp_path / "a.png")