"""Run the updater inside each Toolbx container."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from .terminal import print_separator
from .utils import Command, Context, require

logger = logging.getLogger("sysrefresh")

HOST_ROOT = Path("/run/host")


def parse_toolboxes(output: str) -> list[str]:
    """Container names from `toolbox list --containers`; the first line is a header."""
    names = []
    for line in output.splitlines()[1:]:
        words = line.split()
        if len(words) > 1 and words[1]:
            names.append(words[1])
    return names


def list_toolboxes(toolbx: Any) -> list[str]:
    output = Command(toolbx).args(["list", "--containers"]).output_checked_utf8()
    return parse_toolboxes(output.stdout)


def _host_executable() -> str:
    executable = Path(sys.argv[0]).resolve()
    return str(HOST_ROOT.joinpath(*executable.parts[1:]))


def run_toolbx(ctx: Context) -> None:
    toolbx = require("toolbox")

    print_separator("Toolbx")
    toolboxes = list_toolboxes(toolbx)
    logger.debug("Toolboxes to inspect: %r", toolboxes)

    executable = _host_executable()
    for tb in toolboxes:
        args = [
            "run",
            "-c",
            tb,
            "env",
            f"TOPGRADE_PREFIX='Toolbx {tb}'",
            executable,
            "--only",
            "system",
            "--no-self-update",
            "--skip-notify",
        ]
        if ctx.yes("toolbx"):
            args.append("--yes")
        ctx.execute(toolbx).args(args).status_checked()