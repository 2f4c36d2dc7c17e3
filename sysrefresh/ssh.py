"""Running the updater on remote hosts over SSH."""

from __future__ import annotations

import os
import shlex
from typing import Optional, Sequence

from . import tmux
from .terminal import print_separator
from .utils import Context, SkipStep, require


def prepare_async_ssh_command(args: Sequence[str]) -> list[str]:
    """Turn ssh arguments into a full command that keeps its window open."""
    return ["ssh", *args, "--keep"]


def build_ssh_args(hostname: str, ssh_arguments: Optional[str], topgrade: str) -> list[str]:
    args = ["-t", hostname]
    if ssh_arguments is not None:
        args.extend(ssh_arguments.split())
    args.extend(["env", f"TOPGRADE_PREFIX={hostname}", "$SHELL", "-lc", topgrade])
    return args


def ssh_step(ctx: Context, hostname: str) -> None:
    ssh = require("ssh")

    topgrade = ctx.option("remote_topgrade_path", "topgrade")
    args = build_ssh_args(hostname, ctx.option("ssh_arguments"), topgrade)

    if ctx.option("run_in_tmux", False) and not ctx.dry_run:
        if os.name != "posix":
            raise RuntimeError("Tmux execution is only implemented in Unix")
        tmux.run_command(ctx, hostname, shlex.join(prepare_async_ssh_command(args)))
        raise SkipStep("Remote Topgrade launched in Tmux")

    if ctx.option("open_remotes_in_new_terminal", False) and not ctx.dry_run and os.name == "nt":
        ctx.execute("wt").args(prepare_async_ssh_command(args)).spawn()
        raise SkipStep("Remote Topgrade launched in an external terminal")

    print_separator(f"Remote ({hostname})")
    print(f"Connecting to {hostname}...")
    ctx.execute(ssh).args(args).status_checked()