"""Running the updater inside Vagrant boxes and updating Vagrant base boxes."""

from __future__ import annotations

import logging
import re
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .terminal import print_separator
from .utils import Context, Command, ProcessFailed, SkipStep, require, require_option

logger = logging.getLogger("sysrefresh")

_OUTDATED = re.compile(r"\* '(.*?)' for '(.*?)' is outdated")


class BoxStatus(Enum):
    POWER_OFF = "poweroff"
    RUNNING = "running"
    SAVED = "saved"
    ABORTED = "aborted"

    def powered_on(self) -> bool:
        return self is BoxStatus.RUNNING


@dataclass(frozen=True)
class VagrantBox:
    path: Path
    name: str
    initial_status: BoxStatus

    def smart_name(self) -> str:
        """The directory name for a box called `default`, else the box name."""
        return self.path.name if self.name == "default" else self.name

    def __str__(self) -> str:
        return f"{self.name} @ {self.path}"


def parse_boxes(output: str, directory: Any) -> list[VagrantBox]:
    """Boxes listed by `vagrant status`, run in `directory`."""
    path = Path(directory)
    boxes = []
    for line in output.split("\n")[2:]:
        if not line or line.startswith("\r"):
            break
        logger.debug("Vagrant line: %r", line)
        words = line.split()
        box = VagrantBox(path=path, name=words[0], initial_status=BoxStatus(words[1]))
        logger.debug("%r", box)
        boxes.append(box)
    return boxes


def parse_outdated(output: str) -> list[tuple[str, str]]:
    """(box, provider) pairs reported by `vagrant box outdated --global`."""
    return _OUTDATED.findall(output)


class TemporaryPowerOn:
    """Starts a stopped box on entry and returns it to its former state on exit."""

    def __init__(self, vagrant: Any, vagrant_box: VagrantBox, ctx: Context):
        if vagrant_box.initial_status is BoxStatus.RUNNING:
            raise ValueError(f"Box {vagrant_box} is already running")
        self.vagrant = vagrant
        self.vagrant_box = vagrant_box
        self.ctx = ctx

    def _run(self, subcommand: str) -> Command:
        return (
            self.ctx.execute(self.vagrant)
            .args([subcommand, self.vagrant_box.name])
            .current_dir(self.vagrant_box.path)
        )

    def __enter__(self) -> "TemporaryPowerOn":
        status = self.vagrant_box.initial_status
        self._run("resume" if status is BoxStatus.SAVED else "up").status_checked()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self.ctx.option("vagrant_always_suspend", False):
            subcommand = "suspend"
        elif self.vagrant_box.initial_status is BoxStatus.SAVED:
            subcommand = "suspend"
        else:
            subcommand = "halt"
        print()
        try:
            self._run(subcommand).status_checked()
        except (ProcessFailed, OSError) as err:
            logger.debug("Restoring %s failed: %s", self.vagrant_box, err)


@dataclass
class Vagrant:
    path: Path

    def get_boxes(self, directory: Any) -> list[VagrantBox]:
        output = Command(self.path).arg("status").current_dir(directory).output_checked_utf8()
        logger.debug("Vagrant output in %s: %s", directory, output)
        return parse_boxes(output.stdout, directory)

    def temporary_power_on(self, vagrant_box: VagrantBox, ctx: Context) -> TemporaryPowerOn:
        return TemporaryPowerOn(self.path, vagrant_box, ctx)


def collect_boxes(ctx: Context) -> list[VagrantBox]:
    directories = require_option(
        ctx.option("vagrant_directories"),
        "No Vagrant directories were specified in the configuration file",
    )
    vagrant = Vagrant(require("vagrant"))

    print_separator("Vagrant")
    print("Collecting Vagrant boxes")

    result: list[VagrantBox] = []
    for directory in directories:
        try:
            result.extend(vagrant.get_boxes(directory))
        except (ProcessFailed, OSError, UnicodeDecodeError, ValueError, IndexError) as err:
            logger.error("Error collecting vagrant boxes from %s: %s", directory, err)
    return result


def topgrade_vagrant_box(ctx: Context, vagrant_box: VagrantBox) -> None:
    vagrant = Vagrant(require("vagrant"))
    separator = f"Vagrant ({vagrant_box.smart_name()})"

    with ExitStack() as stack:
        if not vagrant_box.initial_status.powered_on():
            power_on: Optional[bool] = ctx.option("vagrant_power_on", True)
            if power_on is False:
                raise SkipStep(f"Skipping powered off box {vagrant_box}")
            print_separator(separator)
            stack.enter_context(vagrant.temporary_power_on(vagrant_box, ctx))
        else:
            print_separator(separator)

        command = f"env TOPGRADE_PREFIX={vagrant_box.smart_name()} topgrade"
        if ctx.yes("vagrant"):
            command += " -y"

        (
            ctx.execute(vagrant.path)
            .current_dir(vagrant_box.path)
            .args(["ssh", "-c", command])
            .status_checked()
        )


def upgrade_vagrant_boxes(ctx: Context) -> None:
    vagrant = require("vagrant")
    print_separator("Vagrant boxes")

    outdated = Command(vagrant).args(["box", "outdated", "--global"]).output_checked_utf8()
    found = parse_outdated(outdated.stdout)

    for box, provider in found:
        try:
            (
                ctx.execute(vagrant)
                .args(["box", "update", "--box", box, "--provider", provider])
                .status_checked()
            )
        except (ProcessFailed, OSError) as err:
            logger.debug("Updating box %s failed: %s", box, err)

    if not found:
        print("No outdated boxes")
    else:
        ctx.execute(vagrant).args(["box", "prune"]).status_checked()