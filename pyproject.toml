[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "probekit"
version = "0.1.0"
description = "Ping probe packets, reply classification, result gathering and route/neighbour table parsing"
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = [
    "ping",
    "icmp",
    "icmpv6",
    "tcp",
    "udp",
    "host-discovery",
    "routing",
    "neighbor-cache",
    "packets",
    "checksum",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Operating System :: POSIX :: BSD",
    "Operating System :: MacOS",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
    "Topic :: System :: Networking",
    "Topic :: Internet",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["probekit"]

[tool.hatch.build.targets.sdist]
include = [
    "probekit",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
