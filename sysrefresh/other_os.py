"""Package upgrades for the BSDs and Termux."""

from __future__ import annotations

import os
import subprocess

from .terminal import print_separator
from .utils import REQUIRE_SUDO, Command, Context, SkipStep, require, require_option, which

STEP = "system"


def _sudo(ctx: Context):
    return require_option(ctx.sudo, REQUIRE_SUDO)


def upgrade_freebsd(ctx: Context) -> None:
    sudo = _sudo(ctx)
    print_separator("FreeBSD Update")
    ctx.execute(sudo).args(["/usr/sbin/freebsd-update", "fetch", "install"]).status_checked()


def upgrade_freebsd_packages(ctx: Context) -> None:
    sudo = _sudo(ctx)
    print_separator("FreeBSD Packages")
    command = ctx.execute(sudo).args(["/usr/sbin/pkg", "upgrade"])
    if ctx.yes(STEP):
        command.arg("-y")
    command.status_checked()


def audit_freebsd_packages(ctx: Context) -> None:
    sudo = _sudo(ctx)
    print_separator("FreeBSD Audit")
    Command(sudo).args(["/usr/sbin/pkg", "audit", "-Fr"]).status_checked()


def upgrade_openbsd(ctx: Context) -> None:
    sudo = _sudo(ctx)
    print_separator("OpenBSD Update")
    ctx.execute(sudo).args(["/usr/sbin/sysupgrade", "-n"]).status_checked()


def upgrade_openbsd_packages(ctx: Context) -> None:
    sudo = _sudo(ctx)
    print_separator("OpenBSD Packages")
    ctx.execute(sudo).args(["/usr/sbin/pkg_add", "-u"]).status_checked()


def upgrade_dragonfly_packages(ctx: Context) -> None:
    sudo = _sudo(ctx)
    print_separator("DragonFly BSD Packages")
    command = ctx.execute(sudo).args(["/usr/local/sbin/pkg", "upgrade"])
    if ctx.yes(STEP):
        command.arg("-y")
    command.status_checked()


def audit_dragonfly_packages(ctx: Context) -> None:
    sudo = _sudo(ctx)
    print_separator("DragonFly BSD Audit")
    result = subprocess.run([os.fspath(sudo), "/usr/local/sbin/pkg", "audit", "-Fr"])
    if result.returncode != 0:
        print("The package audit was successful, but vulnerable packages still remain on the system")


def upgrade_termux_packages(ctx: Context) -> None:
    pkg = which("nala") or which("pkg")
    if pkg is None:
        raise SkipStep("Cannot find nala or pkg in PATH")

    print_separator("Termux Packages")
    is_nala = pkg.name == "nala"

    command = ctx.execute(pkg).arg("upgrade")
    if ctx.yes(STEP):
        command.arg("-y")
    command.status_checked()

    if not is_nala and ctx.option("cleanup", False):
        ctx.execute(pkg).arg("clean").status_checked()
        autoremove = ctx.execute(require("apt")).arg("autoremove")
        if ctx.yes(STEP):
            autoremove.arg("-y")
        autoremove.status_checked()