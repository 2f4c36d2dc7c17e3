"""Path helpers, binary lookup, command building and the execution context."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import socket
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger("sysrefresh")

DEFAULT_LOG_LEVEL = "warning"
LOG_ENV_VAR = "SYSREFRESH_LOG"

REQUIRE_SUDO = "Require sudo or counterpart but not found, skip"


class SkipStep(Exception):
    """Raised when a step cannot run on this system and should be skipped."""


class ProcessFailed(Exception):
    """Raised when a child process exits with an unexpected status."""

    def __init__(self, program: str, returncode: int):
        super().__init__(f"`{program}` failed: exit status {returncode}")
        self.program = program
        self.returncode = returncode


@dataclass
class Utf8Output:
    """Decoded output of a finished process."""

    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        return f"stdout: {self.stdout!r}, stderr: {self.stderr!r}"


class Command:
    """A command line under construction; runs for real unless `dry` is set."""

    def __init__(self, program: Any, dry: bool = False):
        self.program = os.fspath(program)
        self.arguments: list[str] = []
        self._env: dict[str, str] = {}
        self._env_removed: set[str] = set()
        self._cwd: Optional[str] = None
        self.dry = dry

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.arguments]

    def __str__(self) -> str:
        return shlex.join(self.argv)

    def arg(self, value: Any) -> "Command":
        self.arguments.append(os.fspath(value))
        return self

    def args(self, values: Iterable[Any]) -> "Command":
        for value in values:
            self.arg(value)
        return self

    def env(self, key: str, value: Any) -> "Command":
        self._env[key] = os.fspath(value)
        self._env_removed.discard(key)
        return self

    def env_remove(self, key: str) -> "Command":
        self._env.pop(key, None)
        self._env_removed.add(key)
        return self

    def current_dir(self, path: Any) -> "Command":
        self._cwd = os.fspath(path)
        return self

    def _environment(self) -> Optional[dict[str, str]]:
        if not self._env and not self._env_removed:
            return None
        environment = dict(os.environ)
        for key in self._env_removed:
            environment.pop(key, None)
        environment.update(self._env)
        return environment

    def _announce_dry(self) -> None:
        where = f" in {self._cwd}" if self._cwd else ""
        print(f"Dry running: {self}{where}")

    def status_checked(self) -> None:
        self.status_checked_with_codes(())

    def status_checked_with_codes(self, codes: Iterable[int]) -> None:
        """Run the command; exit codes 0 and those in `codes` count as success."""
        if self.dry:
            self._announce_dry()
            return
        logger.debug("Executing %s", self)
        result = subprocess.run(self.argv, env=self._environment(), cwd=self._cwd)
        if result.returncode != 0 and result.returncode not in set(codes):
            raise ProcessFailed(self.program, result.returncode)

    def output_checked(self) -> Optional[subprocess.CompletedProcess]:
        """Run and capture output; None in dry mode."""
        if self.dry:
            self._announce_dry()
            return None
        logger.debug("Executing %s", self)
        result = subprocess.run(
            self.argv, env=self._environment(), cwd=self._cwd, capture_output=True
        )
        if result.returncode != 0:
            raise ProcessFailed(self.program, result.returncode)
        return result

    def output_checked_utf8(self) -> Optional[Utf8Output]:
        result = self.output_checked()
        if result is None:
            return None
        return Utf8Output(
            result.returncode,
            result.stdout.decode("utf-8"),
            result.stderr.decode("utf-8"),
        )

    def spawn(self) -> Optional[subprocess.Popen]:
        if self.dry:
            self._announce_dry()
            return None
        return subprocess.Popen(self.argv, env=self._environment(), cwd=self._cwd)


@dataclass
class Context:
    """Settings and shared state for one run."""

    dry_run: bool = False
    assume_yes: Any = False
    sudo: Any = None
    options: dict[str, Any] = field(default_factory=dict)
    under_ssh: bool = False
    tmux_session: Optional[str] = None

    def execute(self, program: Any) -> Command:
        return Command(program, dry=self.dry_run)

    def yes(self, step: Any) -> bool:
        if isinstance(self.assume_yes, (set, frozenset, list, tuple)):
            return step in self.assume_yes
        return bool(self.assume_yes)

    def option(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)


def if_exists(path: Any) -> Optional[Any]:
    """Return `path` if it exists, else None."""
    if Path(path).exists():
        logger.debug("Path %r exists", path)
        return path
    logger.debug("Path %r doesn't exist", path)
    return None


def is_descendant_of(path: Any, ancestor: Any) -> bool:
    return all(a == b for a, b in zip(Path(path).parts, Path(ancestor).parts))


def require_path(path: Any) -> Any:
    """Return `path` if it exists, else raise SkipStep."""
    if Path(path).exists():
        logger.debug("Path %r exists", path)
        return path
    raise SkipStep(f"Path {str(path)!r} doesn't exist")


def which(binary_name: Any) -> Optional[Path]:
    found = shutil.which(os.fspath(binary_name))
    if found is None:
        logger.debug("Cannot find %r", binary_name)
        return None
    logger.debug("Detected %r as %r", found, binary_name)
    return Path(found)


def editor() -> list[str]:
    default = "notepad" if sys.platform == "win32" else "vi"
    return os.environ.get("EDITOR", default).split()


def require(binary_name: Any) -> Path:
    found = which(binary_name)
    if found is None:
        raise SkipStep(f"Cannot find {os.fspath(binary_name)!r} in PATH")
    return found


def require_option(option: Optional[T], cause: str) -> T:
    if option is None:
        raise SkipStep(cause)
    return option


def string_prepend_str(string: str, s: str) -> str:
    return s + string


def hostname() -> str:
    try:
        return socket.gethostname()
    except (OSError, UnicodeError) as err:
        raise SkipStep(f"Failed to get hostname: {err}") from err


def vec_prepend_opt(left: Optional[list], right: Optional[list]) -> Optional[list]:
    """Prepend `right` to `left`; either may be None."""
    if left is None:
        return right
    if right is None:
        return left
    return [*right, *left]


def string_append_opt(left: Optional[str], right: Optional[str]) -> Optional[str]:
    if left is None:
        return right
    if right is None:
        return left
    return f"{left} {right}"


def inner_merge_opt(left: Optional[T], right: Optional[T], merge: Callable[[T, T], T]) -> Optional[T]:
    if left is None:
        return right
    if right is None:
        return left
    return merge(left, right)


def commands_merge_opt(left: Optional[dict], right: Optional[dict]) -> Optional[dict]:
    if left is None:
        return right
    if right is None:
        return left
    return {**left, **right}


def check_is_python_2_or_shim(python: Any) -> Any:
    """Raise SkipStep if `python` is Python 2 or a shim without a version."""
    output = Command(python).arg("-V").output_checked_utf8()
    words = output.stdout.split() if output is not None else []
    if len(words) < 2:
        raise SkipStep(f"{os.fspath(python)} is a Python shim, skip.")
    major = int(words[1].split(".")[0])
    if major == 2:
        raise SkipStep(f"{os.fspath(python)} is a Python 2, skip.")
    return python


def _parse_level(directives: Optional[str]) -> Optional[int]:
    if not directives:
        return None
    level = logging.getLevelName(directives.strip().upper())
    return level if isinstance(level, int) else None


def _resolve_level(filter_directives: str) -> int:
    for candidate in (filter_directives, os.environ.get(LOG_ENV_VAR), DEFAULT_LOG_LEVEL):
        level = _parse_level(candidate)
        if level is not None:
            return level
    return logging.WARNING


def install_tracing(filter_directives: str) -> logging.Logger:
    """Set up logging and return the package logger."""
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(_resolve_level(filter_directives))
    return logger


def update_tracing(filter_directives: str) -> None:
    logger.setLevel(_resolve_level(filter_directives))