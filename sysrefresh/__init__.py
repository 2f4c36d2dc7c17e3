"""Upgrade steps for Unix package managers, shell plugins, macOS, the BSDs and remote machines."""

__version__ = "0.1.0"