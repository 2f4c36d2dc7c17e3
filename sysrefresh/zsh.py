"""Updaters for zsh plugin managers and frameworks."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .terminal import print_separator
from .utils import Command, Context, ProcessFailed, SkipStep, require, require_path

logger = logging.getLogger("sysrefresh")


def _home() -> Path:
    return Path.home()


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value) if value is not None else default


def _zsh_output(flag: str, script: str) -> Optional[str]:
    """Stdout of a zsh one-liner, or None when it fails or prints nothing."""
    try:
        output = Command("zsh").args([flag, script]).output_checked_utf8()
    except (ProcessFailed, OSError, UnicodeDecodeError) as err:
        logger.debug("Running zsh failed: %s", err)
        return None
    if output is None or not output.stdout:
        return None
    return output.stdout


def _under_ssh() -> bool:
    return "SSH_CLIENT" in os.environ or "SSH_TTY" in os.environ


def zdotdir() -> Path:
    """The zsh configuration directory: $ZDOTDIR, or the home directory."""
    return _env_path("ZDOTDIR", _home())


def zshrc() -> Path:
    return zdotdir() / ".zshrc"


def run_zr(ctx: Context) -> None:
    zsh = require("zsh")
    require("zr")

    print_separator("zr")
    cmd = f"source {zshrc()} && zr --update"
    ctx.execute(zsh).args(["-l", "-c", cmd]).status_checked()


def run_antidote(ctx: Context) -> None:
    zsh = require("zsh")
    antidote = Path(require_path(zdotdir() / ".antidote")) / "antidote.zsh"

    print_separator("antidote")
    ctx.execute(zsh).arg("-c").arg(f"source {antidote} && antidote update").status_checked()


def run_antibody(ctx: Context) -> None:
    require("zsh")
    antibody = require("antibody")

    print_separator("antibody")
    ctx.execute(antibody).arg("update").status_checked()


def run_antigen(ctx: Context) -> None:
    zsh = require("zsh")
    rc = require_path(zshrc())
    require_path(_env_path("ADOTDIR", _home() / "antigen.zsh"))

    print_separator("antigen")
    cmd = f"source {rc} && (antigen selfupdate ; antigen update)"
    ctx.execute(zsh).args(["-l", "-c", cmd]).status_checked()


def run_zgenom(ctx: Context) -> None:
    zsh = require("zsh")
    rc = require_path(zshrc())
    require_path(_env_path("ZGEN_SOURCE", _home() / ".zgenom"))

    print_separator("zgenom")
    cmd = f"source {rc} && zgenom selfupdate && zgenom update"
    ctx.execute(zsh).args(["-l", "-c", cmd]).status_checked()


def run_zplug(ctx: Context) -> None:
    zsh = require("zsh")
    require_path(zshrc())
    require_path(_env_path("ZPLUG_HOME", _home() / ".zplug"))

    print_separator("zplug")
    ctx.execute(zsh).args(["-i", "-c", "zplug update"]).status_checked()


def run_zinit(ctx: Context) -> None:
    zsh = require("zsh")
    rc = require_path(zshrc())
    data_home = _env_path("XDG_DATA_HOME", _home() / ".local" / "share")
    require_path(_env_path("ZINIT_HOME", data_home / "zinit"))

    print_separator("zinit")
    cmd = f"source {rc} && zinit self-update && zinit update --all"
    ctx.execute(zsh).args(["-i", "-c", cmd]).status_checked()


def run_zi(ctx: Context) -> None:
    zsh = require("zsh")
    rc = require_path(zshrc())
    require_path(_home() / ".zi")

    print_separator("zi")
    cmd = f"source {rc} && zi self-update && zi update --all"
    ctx.execute(zsh).args(["-i", "-c", cmd]).status_checked()


def run_zim(ctx: Context) -> None:
    zsh = require("zsh")
    zim_home = os.environ.get("ZIM_HOME")
    if zim_home is None:
        zim_home = _zsh_output("-c", "[[ -n ${ZIM_HOME} ]] && print -n ${ZIM_HOME}")
    require_path(Path(zim_home) if zim_home is not None else _home() / ".zim")

    print_separator("zim")
    ctx.execute(zsh).args(["-i", "-c", "zimfw upgrade && zimfw update"]).status_checked()


def run_oh_my_zsh(ctx: Context) -> None:
    require("zsh")

    # A login shell reached over SSH does not source zshrc, so $ZSH may be
    # missing; ask an interactive zsh for it.
    if _under_ssh():
        env_zsh = _zsh_output("-ic", "print -rn -- ${ZSH:?}")
        if env_zsh is not None:
            logger.debug("Oh-my-zsh: under SSH, setting ZSH=%s", env_zsh)
            os.environ["ZSH"] = env_zsh

    oh_my_zsh = Path(require_path(_env_path("ZSH", _home() / ".oh-my-zsh")))

    print_separator("oh-my-zsh")

    custom = os.environ.get("ZSH_CUSTOM")
    if custom is None:
        custom = _zsh_output("-c", "test $ZSH_CUSTOM && echo -n $ZSH_CUSTOM")
    custom_dir = Path(custom) if custom is not None else oh_my_zsh / "custom"
    logger.debug("oh-my-zsh custom dir: %s", custom_dir)

    # Exit code 80 means it was already up to date.
    ctx.execute("zsh").arg(oh_my_zsh / "tools/upgrade.sh").status_checked_with_codes([80])