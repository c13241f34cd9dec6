[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clabkit"
version = "0.1.0"
description = "Building blocks for container-based network labs: topology links, template variables, hosts entries, graphs, inspection tables and certificates"
requires-python = ">=3.10"
keywords = ["network", "lab", "topology", "containers", "graphviz", "certificates", "veth"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]
dependencies = [
    "packaging",
    "tabulate",
    "cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["clabkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
