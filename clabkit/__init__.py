"""Building blocks for container-based network labs: links, variables, hosts entries, graphs and certificates."""

__version__ = "0.1.0"