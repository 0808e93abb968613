"""Installable components and the command runner executing their payload.

A component's payload is either a list of shell commands (from the product
configuration) or a Python callable. Every command runs through
CommandRunner for consistent logging and error handling.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


class InstallError(Exception):
    """Base exception for installation failures."""

    def __init__(self, message: str, step: str = ""):
        super().__init__(message)
        self.step = step


class CommandRunner:
    """Runs shell commands with real-time output streaming."""

    def __init__(self, log_callback: Callable[[str], None]):
        self.log = log_callback

    def run(self, cmd: list[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a command, streaming stdout/stderr line by line."""
        self.log(f">>> {' '.join(cmd)}")
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise InstallError(f"Cannot run {cmd[0]}: {e}") from e

        output_lines: list[str] = []
        for line in proc.stdout:
            line = line.rstrip("\n")
            output_lines.append(line)
            self.log(line)
        proc.wait()

        if check and proc.returncode != 0:
            raise InstallError(
                f"Command failed (exit {proc.returncode}): {' '.join(cmd)}"
            )
        return subprocess.CompletedProcess(
            cmd, proc.returncode, "\n".join(output_lines), ""
        )


@dataclass
class Component:
    """One selectable unit of the product."""

    name: str
    display_name: str = ""
    version: str = ""
    licenses: dict[str, str] = field(default_factory=dict)
    selected: bool = True
    installed: bool = False
    forced: bool = False
    install_commands: list[list[str]] = field(default_factory=list)
    uninstall_commands: list[list[str]] = field(default_factory=list)
    install: Callable[[Callable[[str], None]], None] | None = None
    uninstall: Callable[[Callable[[str], None]], None] | None = None

    @property
    def title(self) -> str:
        return self.display_name or self.name

    def run_install(self, log: Callable[[str], None]) -> None:
        self._run(self.install, self.install_commands, log)

    def run_uninstall(self, log: Callable[[str], None]) -> None:
        self._run(self.uninstall, self.uninstall_commands, log)

    def _run(self, action, commands: list[list[str]], log: Callable[[str], None]) -> None:
        try:
            if action is not None:
                action(log)
            runner = CommandRunner(log_callback=log)
            for cmd in commands:
                runner.run(cmd)
        except InstallError as e:
            if not e.step:
                e.step = self.name
            raise
