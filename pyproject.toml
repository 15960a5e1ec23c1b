[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "linsk"
version = "0.1.1"
description = "Building blocks for reaching Linux-native file systems through a QEMU-hosted Alpine Linux VM: safe QEMU arguments, serial console control, SSH helpers and verified downloads."
requires-python = ">=3.10"
dependencies = [
    "paramiko",
    "humanize",
]
keywords = [
    "qemu",
    "virtual-machine",
    "filesystem",
    "serial-console",
    "ssh",
    "alpine",
    "lvm",
    "luks",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: MacOS",
    "Operating System :: Microsoft :: Windows",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["linsk"]

[tool.pytest.ini_options]
addopts = "-ra"
