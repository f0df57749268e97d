[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vswitchflow"
version = "0.1.0"
description = "Build and parse Open vSwitch OpenFlow match expressions and assemble flow bundles"
requires-python = ">=3.10"
dependencies = []
keywords = ["openvswitch", "ovs", "openflow", "ovs-ofctl", "sdn", "networking", "flows"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vswitchflow"]

[tool.hatch.build.targets.sdist]
include = ["vswitchflow", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
