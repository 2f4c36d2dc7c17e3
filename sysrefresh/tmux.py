"""Running the updater inside tmux sessions and windows."""

from __future__ import annotations

import os
import shlex
import sys
from itertools import count
from pathlib import Path
from typing import Any, Optional, Sequence

from .terminal import print_separator
from .utils import Command, Context, ProcessFailed, require_path, which

SESSION_NAME = "topgrade"
WINDOW_NAME = "topgrade"


def run_tpm(ctx: Context) -> None:
    tpm = require_path(Path.home() / ".tmux/plugins/tpm/bin/update_plugins")
    print_separator("tmux plugins")
    ctx.execute(tpm).arg("all").status_checked()


class Tmux:
    """A tmux binary plus extra arguments given to every invocation."""

    def __init__(self, args: Sequence[str] = (), tmux: Optional[Any] = None):
        if tmux is None:
            tmux = which("tmux")
            if tmux is None:
                raise RuntimeError("Could not find tmux")
        self.tmux = Path(tmux)
        self.args: Optional[list[str]] = list(args) or None

    def _argv(self, args: Sequence[str]) -> list[str]:
        return [os.fspath(self.tmux), *(self.args or []), *args]

    def command(self, args: Sequence[str]) -> Command:
        cmd = Command(self.tmux)
        if self.args:
            cmd.args(self.args).env_remove("TMUX")
        return cmd.args(list(args))

    def has_session(self, session_name: str) -> bool:
        try:
            self.command(["has-session", "-t", session_name]).output_checked()
        except ProcessFailed:
            return False
        return True

    def new_session(self, session_name: str, window_name: str, command: str) -> None:
        """Create a detached session running `command` through sh."""
        self.command(
            ["new-session", "-d", "-s", session_name, "-n", window_name, command]
        ).output_checked()

    def new_unique_session(self, session_name: str, window_name: str, command: str) -> str:
        """Like new_session, with a numeric suffix to avoid a taken name; returns the name."""
        session = session_name
        for i in count(1):
            if not self.has_session(session):
                self.new_session(session, window_name, command)
                return session
            session = f"{session_name}-{i}"
        raise AssertionError("unreachable")

    def new_window(self, session_name: str, window_name: str, command: str) -> None:
        (
            self.command(
                [
                    "new-window",
                    "-a",
                    "-t",
                    f"{session_name}:{window_name}",
                    "-n",
                    window_name,
                    command,
                ]
            )
            .env_remove("TMUX")
            .status_checked()
        )

    def window_indices(self, session_name: str) -> list[int]:
        output = self.command(
            ["list-windows", "-F", "#{window_index}", "-t", session_name]
        ).output_checked_utf8()
        try:
            return [int(line) for line in output.stdout.splitlines()]
        except ValueError as err:
            raise RuntimeError("Failed to compute tmux windows") from err


def run_in_tmux(args: Sequence[str]) -> None:
    """Start the updater in a new tmux session and attach to it when not inside tmux."""
    command = shlex.join(
        ["env", "TOPGRADE_KEEP_END=1", "TOPGRADE_INSIDE_TMUX=1", *sys.argv]
    )
    tmux = Tmux(args)
    session = tmux.new_unique_session(SESSION_NAME, WINDOW_NAME, command)

    if "TMUX" not in os.environ:
        argv = tmux._argv(["attach-session", "-t", session])
        env = dict(os.environ)
        try:
            os.execvpe(argv[0], argv, env)
        except OSError as err:
            raise RuntimeError("Failed to `execvp(3)` tmux") from err
    else:
        print("Topgrade launched in a new tmux session")


def _tmux_arguments(ctx: Context) -> list[str]:
    value = ctx.option("tmux_arguments", [])
    if value is None:
        return []
    if isinstance(value, str):
        return shlex.split(value)
    return list(value)


def run_command(ctx: Context, window_name: str, command: str) -> None:
    """Run `command` in a new window of the run's session, creating it on first use."""
    tmux = Tmux(_tmux_arguments(ctx))
    session_name = getattr(ctx, "tmux_session", None)

    if session_name is not None:
        indices = tmux.window_indices(session_name)
        if not indices:
            raise RuntimeError(f"tmux session {session_name} has no windows")
        tmux.new_window(session_name, str(indices[-1]), command)
    else:
        ctx.tmux_session = tmux.new_unique_session(SESSION_NAME, window_name, command)