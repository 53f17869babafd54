[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rsvpte"
version = "0.1.0"
description = "A small RSVP-TE signalling daemon: PATH/RESV exchange, label distribution and soft-state refresh over raw IPv4 sockets."
requires-python = ">=3.10"
dependencies = []
keywords = ["rsvp", "rsvp-te", "mpls", "signalling", "netlink", "routing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
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

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rsvpte = "rsvpte.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rsvpte"]

[tool.pytest.ini_options]
addopts = "-ra"
