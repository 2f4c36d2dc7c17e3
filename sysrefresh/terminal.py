"""Terminal output: separators, results, prompts and notifications."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, TextIO

from .utils import Command

logger = logging.getLogger("sysrefresh")

_COLORS = {"red": 31, "green": 32, "yellow": 33, "blue": 34}
_AUTO = object()


def _style(text: str, color: Optional[str] = None, enabled: bool = True) -> str:
    if not enabled:
        return text
    codes = ["1"] + ([str(_COLORS[color])] if color else [])
    return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"


@dataclass(frozen=True)
class StepResult:
    status: str
    reason: str = ""

    @classmethod
    def success(cls) -> "StepResult":
        return cls("success")

    @classmethod
    def failure(cls) -> "StepResult":
        return cls("failure")

    @classmethod
    def ignored(cls) -> "StepResult":
        return cls("ignored")

    @classmethod
    def skipped(cls, reason: str) -> "StepResult":
        return cls("skipped", reason)


def format_separator(message: str, width: Optional[int]) -> str:
    """Build the separator line; a None width means a dumb terminal."""
    if width is None:
        return f"―― {message} ――"
    border = max(2, max(0, min(80, width) - 4 - len(message)))
    return f"\n── {message} " + "─" * border


def shell() -> str:
    if os.name == "nt":
        return "pwsh" if shutil.which("pwsh") else "powershell"
    return os.environ.get("SHELL", "sh")


def run_shell() -> None:
    Command(shell()).env("IN_TOPGRADE", "1").status_checked()


class Terminal:
    def __init__(self, stream: Optional[TextIO] = None, input_stream: Optional[TextIO] = None,
                 width=_AUTO, prefix: Optional[str] = None, color: Optional[bool] = None):
        self.stream = stream if stream is not None else sys.stdout
        self.input_stream = input_stream if input_stream is not None else sys.stdin
        self.width = self._detect_width() if width is _AUTO else width
        if prefix is None:
            env_prefix = os.environ.get("TOPGRADE_PREFIX")
            prefix = f"({env_prefix}) " if env_prefix is not None else ""
        self.prefix = prefix
        self.color = self._isatty(self.stream) if color is None else color
        self.set_title = True
        self.display_time = True
        self.desktop_notification = False

    @staticmethod
    def _isatty(stream) -> bool:
        try:
            return stream.isatty()
        except (AttributeError, ValueError):
            return False

    def _detect_width(self) -> Optional[int]:
        if not self._isatty(self.stream):
            return None
        try:
            return os.get_terminal_size(self.stream.fileno()).columns
        except (OSError, ValueError, AttributeError):
            return None

    def _write(self, text: str) -> None:
        try:
            self.stream.write(text)
            self.stream.flush()
        except (OSError, ValueError):
            pass

    def _set_title(self, title: str) -> None:
        if self.color:
            self._write(f"\x1b]0;{title}\x07")

    def notify_desktop(self, message: str, timeout: Optional[float] = None) -> None:
        logger.debug("Desktop notification: %s", message)
        notifier = shutil.which("notify-send")
        if notifier is None:
            return
        argv = [notifier, "--app-name=topgrade"]
        if timeout is not None:
            argv.append(f"--expire-time={int(timeout * 1000)}")
        argv += ["Topgrade", message]
        try:
            subprocess.run(argv, capture_output=True)
        except OSError:
            pass

    def print_separator(self, message: str) -> None:
        if self.set_title:
            self._set_title(f"{self.prefix}Topgrade - {message}")
        if self.desktop_notification:
            self.notify_desktop(message, 5)
        if self.display_time:
            message = f"{self.prefix}{datetime.now():%H:%M:%S} - {message}"
        line = format_separator(message, self.width)
        if self.width is not None:
            line = _style(line, enabled=self.color)
        self._write(line + "\n")

    def print_error(self, key: str, message: str) -> None:
        self._write(f"{_style(f'{key} failed:', 'red', self.color)} {message}")

    def print_warning(self, message: str) -> None:
        self._write(_style(message, "yellow", self.color) + "\n")

    def print_info(self, message: str) -> None:
        self._write(_style(message, "blue", self.color) + "\n")

    def print_result(self, key: str, result: StepResult) -> None:
        labels = {
            "success": ("OK", "green"),
            "failure": ("FAILED", "red"),
            "ignored": ("IGNORED", "yellow"),
            "skipped": ("SKIPPED", "blue"),
        }
        label, color = labels[result.status]
        text = _style(label, color, self.color)
        if result.status == "skipped":
            text = f"{text}: {result.reason}"
        self._write(f"{key}: {text}\n")

    def get_key(self) -> str:
        """Read one character; raises EOFError when input is exhausted."""
        stream = self.input_stream
        if self._isatty(stream) and os.name != "nt":
            import termios
            import tty

            fd = stream.fileno()
            saved = termios.tcgetattr(fd)
            try:
                tty.setraw(fd)
                char = stream.read(1)
            finally:
                termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        else:
            char = stream.read(1)
        if not char:
            raise EOFError("end of input")
        return char

    def prompt_yesno(self, question: str) -> bool:
        self._write(_style(f"{question} (y)es/(N)o", "yellow", self.color))
        while True:
            char = self.get_key()
            if char in "yY":
                return True
            if char in "nN\r\n":
                return False

    def should_retry(self, interrupted: bool, step_name: str) -> bool:
        if self.width is None:
            return False
        if self.set_title:
            self._set_title("Topgrade - Awaiting user")
        if self.desktop_notification:
            self.notify_desktop(f"{step_name} failed", None)
        prompt = _style(f"{self.prefix}Retry? (y)es/(N)o/(s)hell/(q)uit", "yellow", self.color)
        self._write(f"\n{prompt}")
        answer = False
        while True:
            try:
                char = self.get_key()
            except (OSError, EOFError) as err:
                logger.error("Error reading from terminal: %s", err)
                break
            if char in "yY":
                answer = True
                break
            if char in "sS":
                self._write("\n\nDropping you to shell. Fix what you need and then exit the shell.\n\n")
                try:
                    run_shell()
                except Exception as err:  # noqa: BLE001 - report and prompt again
                    self._write(f"Failed to run shell: {err}\n{prompt}")
                    continue
                answer = True
                break
            if char in "nN\r\n":
                break
            if char in "qQ":
                raise InterruptedError("Quit from user input")
        self._write("\n")
        return answer


_lock = threading.Lock()
_terminal: Optional[Terminal] = None


def _global() -> Terminal:
    global _terminal
    if _terminal is None:
        _terminal = Terminal()
    return _terminal


def should_retry(interrupted: bool, step_name: str) -> bool:
    with _lock:
        return _global().should_retry(interrupted, step_name)


def print_separator(message: str) -> None:
    with _lock:
        _global().print_separator(message)


def print_error(key: str, message: str) -> None:
    with _lock:
        _global().print_error(key, message)


def print_warning(message: str) -> None:
    with _lock:
        _global().print_warning(message)


def print_info(message: str) -> None:
    with _lock:
        _global().print_info(message)


def print_result(key: str, result: StepResult) -> None:
    with _lock:
        _global().print_result(key, result)


def is_dumb() -> bool:
    """Tell whether the terminal is dumb."""
    with _lock:
        return _global().width is None


def get_key() -> str:
    with _lock:
        return _global().get_key()


def set_title(enabled: bool) -> None:
    with _lock:
        _global().set_title = enabled


def set_desktop_notifications(enabled: bool) -> None:
    with _lock:
        _global().desktop_notification = enabled


def prompt_yesno(question: str) -> bool:
    with _lock:
        return _global().prompt_yesno(question)


def notify_desktop(message: str, timeout: Optional[float]) -> None:
    with _lock:
        _global().notify_desktop(message, timeout)


def display_time(enabled: bool) -> None:
    with _lock:
        _global().display_time = enabled