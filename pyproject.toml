[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sysrefresh"
version = "0.1.0"
description = "Upgrade steps for Unix package managers, shell plugins, macOS, the BSDs and remote machines"
requires-python = ">=3.10"
dependencies = []
keywords = ["upgrade", "package-manager", "sysadmin", "automation", "shell", "homebrew", "nix", "zsh"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: BSD",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sysrefresh"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
