import json

from clabkit.hostsfile import GenericContainer, NetworkSettings
from clabkit.inspect import (
    ContainerDetails,
    collect_details,
    container_ipv4,
    container_ipv6,
    render_json,
    render_table,
    to_table_data,
)


def make_container(name, lab="alpha", v4="", v6="", is_set=True, topo="/tmp/topo.yml"):
    return GenericContainer(
        names=[f"/{name}"],
        id=f"{name}-full-id",
        short_id=f"{name}-id",
        image="img:latest",
        state="running",
        labels={
            "containerlab": lab,
            "clab-topo-file": topo,
            "clab-node-kind": "linux",
            "clab-node-group": "grp",
        },
        network_settings=NetworkSettings(
            is_set=is_set, ipv4_addr=v4, ipv4_plen=24, ipv6_addr=v6, ipv6_plen=64
        ),
    )


def test_container_ip_not_set():
    ctr = make_container("n1", v4="172.20.20.2", is_set=False)
    assert container_ipv4(ctr) == ""
    assert container_ipv6(ctr) == ""


def test_container_ip_missing_is_na():
    ctr = make_container("n1")
    assert container_ipv4(ctr) == "NA"
    assert container_ipv6(ctr) == "NA"


def test_container_ip_with_prefix_length():
    ctr = make_container("n1", v4="172.20.20.2", v6="2001:172:20:20::2")
    assert container_ipv4(ctr) == "172.20.20.2/24"
    assert container_ipv6(ctr) == "2001:172:20:20::2/64"


def test_collect_details_fields_and_order():
    containers = [
        make_container("n2", lab="beta"),
        make_container("n3", lab="alpha"),
        make_container("n1", lab="alpha"),
    ]
    details = collect_details(containers, cwd="/tmp")
    assert [(d.lab_name, d.name) for d in details] == [
        ("alpha", "n1"),
        ("alpha", "n3"),
        ("beta", "n2"),
    ]
    first = details[0]
    assert first.container_id == "n1-id"
    assert first.kind == "linux"
    assert first.group == "grp"
    assert first.lab_path == "topo.yml"


def test_collect_details_missing_topo_label_gives_empty_path():
    details = collect_details([make_container("n1", topo="")], cwd="/tmp")
    assert details[0].lab_path == ""


def test_to_table_data_columns():
    details = collect_details([make_container("n1"), make_container("n2")], cwd="/tmp")
    rows = to_table_data(details)
    assert [r[0] for r in rows] == ["1", "2"]
    assert rows[0][1] == "n1"
    assert len(rows[0]) == 9
    all_rows = to_table_data(details, all_labs=True)
    assert len(all_rows[0]) == 11
    assert all_rows[0][1:4] == ["topo.yml", "alpha", "n1"]


def test_render_table_headers():
    details = collect_details([make_container("n1")], cwd="/tmp")
    table = render_table(details)
    assert "IPv4 Address" in table
    assert "Topo Path" not in table
    assert "n1" in table
    assert "Topo Path" in render_table(details, all_labs=True)


def test_render_table_merges_repeated_lab_name():
    details = collect_details([make_container("n1"), make_container("n2")], cwd="/tmp")
    table = render_table(details, all_labs=True)
    assert table.count("alpha") == 1
    assert table.count("topo.yml") == 1


def test_render_json_round_trip_omits_empty():
    details = [ContainerDetails(lab_name="alpha", name="n1", state="running")]
    decoded = json.loads(render_json(details))
    assert decoded == [{"lab_name": "alpha", "name": "n1", "state": "running"}]


def test_render_json_uses_field_names():
    details = collect_details([make_container("n1", v4="172.20.20.2")], cwd="/tmp")
    decoded = json.loads(render_json(details))
    assert decoded[0]["labPath"] == "topo.yml"
    assert decoded[0]["ipv4_address"] == "172.20.20.2/24"
    assert decoded[0]["container_id"] == "n1-id"