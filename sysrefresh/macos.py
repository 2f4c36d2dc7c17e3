"""macOS updaters: system updates, App Store, MacPorts, Sparkle and Xcode."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .terminal import print_separator, prompt_yesno
from .utils import (
    REQUIRE_SUDO,
    Command,
    Context,
    ProcessFailed,
    require,
    require_option,
)

logger = logging.getLogger("sysrefresh")

APPLICATIONS_DIR = Path("/Applications")
INSTALLED = "(Installed)"


def _stdout(output) -> str:
    return output.stdout if output is not None else ""


def _is_gm(release: str) -> bool:
    return "GM" in release or "Release Candidate" in release


def _is_beta(release: str) -> bool:
    return "Beta" in release


def _is_regular(release: str) -> bool:
    return not (_is_gm(release) or _is_beta(release))


@dataclass
class XcodesReleases:
    """Xcode release lines split by channel; a line may be in both gm and beta."""

    gm: list[str] = field(default_factory=list)
    beta: list[str] = field(default_factory=list)
    regular: list[str] = field(default_factory=list)


def classify_xcodes_releases(releases: str) -> XcodesReleases:
    lines = releases.splitlines()
    return XcodesReleases(
        gm=[line for line in lines if _is_gm(line)],
        beta=[line for line in lines if _is_beta(line)],
        regular=[line for line in lines if _is_regular(line)],
    )


def run_macports(ctx: Context) -> None:
    require("port")
    sudo = require_option(ctx.sudo, REQUIRE_SUDO)

    print_separator("MacPorts")
    ctx.execute(sudo).args(["port", "selfupdate"]).status_checked()
    ctx.execute(sudo).args(["port", "-u", "upgrade", "outdated"]).status_checked()
    if ctx.option("cleanup", False):
        ctx.execute(sudo).args(["port", "-N", "reclaim"]).status_checked()


def run_mas(ctx: Context) -> None:
    mas = require("mas")
    print_separator("macOS App Store")
    ctx.execute(mas).arg("upgrade").status_checked()


def system_update_available() -> bool:
    output = Command("softwareupdate").arg("--list").output_checked_utf8()
    logger.debug("%s", output)
    return "No new software available" not in output.stderr


def upgrade_macos(ctx: Context) -> None:
    print_separator("macOS system update")

    should_ask = not (ctx.yes("system") or ctx.dry_run)
    if should_ask:
        print("Finding available software")
        if not system_update_available():
            print("No new software available.")
            return
        if not prompt_yesno("A system update is available. Do you wish to install it?"):
            return
        print()

    command = ctx.execute("softwareupdate").args(["--install", "--all"])
    if should_ask:
        command.arg("--no-scan")
    command.status_checked()


def run_sparkle(ctx: Context) -> None:
    sparkle = require("sparkle")
    print_separator("Sparkle")

    for application in APPLICATIONS_DIR.iterdir():
        try:
            Command(sparkle).args(["--probe", "--application"]).arg(application).output_checked_utf8()
        except (ProcessFailed, OSError, UnicodeDecodeError):
            continue
        (
            ctx.execute(sparkle)
            .args(["bundle", "--check-immediately", "--application"])
            .arg(application)
            .status_checked()
        )


def process_xcodes_releases(releases_filtered: list[str], should_ask: bool, ctx: Context) -> None:
    """Offer to install the newest release of one channel if it is not installed."""
    xcodes = require("xcodes")

    if not releases_filtered or INSTALLED in releases_filtered[-1]:
        return

    latest = releases_filtered[-1]
    print(f"New Xcode release detected: {latest}")
    if should_ask:
        if prompt_yesno("Would you like to install it?"):
            try:
                ctx.execute(xcodes).args(["install", latest]).status_checked()
            except (ProcessFailed, OSError) as err:
                logger.debug("Installing %s failed: %s", latest, err)
        print()


def update_xcodes(ctx: Context) -> None:
    xcodes = require("xcodes")
    print_separator("Xcodes")

    should_ask = not (ctx.yes("xcodes") or ctx.dry_run)

    releases = _stdout(ctx.execute(xcodes).arg("update").output_checked_utf8())
    installed = [line for line in releases.splitlines() if INSTALLED in line]
    if not installed:
        print("No Xcode releases installed.")
        return

    classified = classify_xcodes_releases(releases)
    channels = (
        (_is_gm, classified.gm),
        (_is_beta, classified.beta),
        (_is_regular, classified.regular),
    )
    for predicate, group in channels:
        if any(predicate(release) for release in installed):
            process_xcodes_releases(group, should_ask, ctx)

    releases_new = _stdout(ctx.execute(xcodes).arg("list").output_checked_utf8()).splitlines()
    for predicate, _group in channels:
        now_installed = list(
            dict.fromkeys(line for line in releases_new if INSTALLED in line and predicate(line))
        )
        if should_ask and len(now_installed) == 2:
            if prompt_yesno("Would you like to move the former Xcode release to the trash?"):
                try:
                    ctx.execute(xcodes).args(["uninstall", now_installed[0]]).status_checked()
                except (ProcessFailed, OSError) as err:
                    logger.debug("Uninstalling %s failed: %s", now_installed[0], err)