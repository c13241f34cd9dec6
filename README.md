# clabkit

clabkit is a library of building blocks for container-based network labs.
It can:

- build endpoints and links from `node:interface` strings and check them for
  bad syntax, duplicates and clashing root-namespace interfaces,
- resolve bind-mount paths (with `~` and `$nodeDir`) and parse container names,
- work out per-link template variables (link names, point-to-point IPs,
  far-end data) for every node,
- write and remove a lab's block of entries in a hosts file,
- render lab containers as a table or as JSON,
- render a topology as a Graphviz dot file, and a PNG when `dot` is installed,
- create a root CA and sign certificates with it,
- show version details and release-notes links.

## Installation

```
pip install clabkit
```

To run the test suite, install the `test` extra and run `pytest`:

```
pip install "clabkit[test]"
pytest
```

## Usage

### Topology links

```python
from clabkit.topology import NodeConfig, LinkConfig, new_link, verify_links

nodes = {
    "n1": NodeConfig(short_name="n1", kind="srl"),
    "n2": NodeConfig(short_name="n2", kind="linux"),
}
configs = [LinkConfig(endpoints=["n1:e1-1", "n2:eth1"])]
verify_links(configs)                    # raises TopologyError on problems
links = [new_link(lc, nodes) for lc in configs]
```

`new_link` gives each endpoint a random MAC under the `aa:c1:ab` OUI and adds
it to its node's `endpoints`. The node names `host` and `mgmt-net` refer to
the host namespace and the management bridge. Other checks:
`check_endpoint`, `verify_root_netns_interface_uniqueness` and
`verify_host_network_mode`.

`clabkit.veth.parse_veth_endpoint` parses `<container>:<iface>` or
`<kind>:<name>:<iface>` (kind one of `ovs-bridge`, `bridge`, `host`) into a
`VethEndpoint`.

### Paths and host checks

`clabkit.paths` offers `resolve_path`, `resolve_bind_paths(binds, node_dir)`
(the host path must exist), `get_short_name(lab_name, container_name)`,
`virtualization_supported()` (looks for `vmx`/`svm` in `/proc/cpuinfo`) and
`check_resources()`, which returns and logs warnings about vCPUs and free
memory.

### Template variables

```python
from clabkit.linkvars import ip_far_end_s, prepare_vars

ip_far_end_s("10.0.0.1/30")   # "10.0.0.2/30"
ip_far_end_s("10.0.0.1/32")   # ""
variables = prepare_vars(nodes, links)
```

When both nodes carry a `clab_system_ip` variable, links get `/31` addresses
in `1.x.y.z`; `clab_link_name` defaults to `to_<far-node>`. Link variables
given as two-element lists are split between the two ends.
`get_template_names_in_dirs(paths)` lists `<name>__<role>.tmpl` templates.

### Hosts file

`clabkit.hostsfile` has `generate_hosts_entries(containers, labname)`,
`append_hosts_file_entries(containers, labname, filename="/etc/hosts")` and
`delete_entries_from_hosts_file(labname, filename="/etc/hosts")`. Containers
are `GenericContainer` objects with `NetworkSettings`.

### Inspection output

```python
from clabkit.inspect import collect_details, render_table, render_json

details = collect_details(containers)
print(render_table(details))
print(render_json(details))
```

### Graphs

`clabkit.graph.build_dot(name, nodes, links)` returns the dot text;
`generate_graph(name, lab_dir, nodes, links)` writes
`<lab_dir>/graph/<name>.dot` and, if the `dot` program is found, a PNG next
to it, and returns both paths.

### Certificates

```python
from clabkit.cert import CaRootInput, CertInput, generate_root_ca, generate_cert

generate_root_ca("./pki", CaRootInput())
generate_cert("./pki/ca.pem", "./pki/ca-key.pem",
              CertInput(hosts=["node1", "node1.demo.io"], name="node1"), "./pki")
```

Each call writes `<prefix>.pem`, `<prefix>-key.pem` and `<prefix>.csr`.
`create_root_ca(lab_name, ca_root_dir, kinds)` makes a lab root CA only when
an `srl` node is present and none exists yet; `retrieve_node_cert_data` reads
a node's certificate and key back.

### Version

`clabkit.version` has `version_text()`, `docs_link_from_ver("0.15.1")`
(`"0.15/#0151"`), `is_newer(latest, current)` and `latest_version()`.

## What it does not do

clabkit has no command-line program. It does not start, stop or list
containers, does not create veth pairs, bridges or VXLAN interfaces, does not
generate Clos topology files or Ansible inventories, and does not push
configuration to devices. It works on the data you pass to it.