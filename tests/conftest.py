"""Shared test fixtures."""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import pytest


@dataclass(frozen=True, slots=True)
class Invocation:
    argv: list[str]
    env: Mapping[str, str] | None
    cwd: Path | None


Handler = Callable[[Invocation], tuple[int, str] | tuple[int, str, str]]


@dataclass(slots=True)
class FakeCommands:
    """Stands in for ``subprocess.run``; dispatches on the executable's basename.

    A handler returns ``(status, stdout)`` or ``(status, stdout, stderr)``.
    """

    handlers: dict[str, Handler] = field(default_factory=dict)
    calls: list[Invocation] = field(default_factory=list)

    def on(self, tool: str, handler: Handler) -> None:
        self.handlers[tool] = handler

    def reply(self, tool: str, status: int = 0, output: str = "", errors: str = "") -> None:
        self.handlers[tool] = lambda _invocation: (status, output, errors)

    def calls_to(self, tool: str) -> list[Invocation]:
        return [call for call in self.calls if Path(call.argv[0]).name == tool]

    def __call__(self, argv, *, stdout, stderr=None, stdin=None, env=None, cwd=None, check=False):
        invocation = Invocation(
            argv=list(argv),
            env=env,
            cwd=Path(cwd) if cwd is not None else None,
        )
        self.calls.append(invocation)
        handler = self.handlers.get(Path(argv[0]).name)
        if handler is None:
            raise FileNotFoundError(2, "No such file or directory", argv[0])
        status, output, *rest = handler(invocation)
        errors = rest[0] if rest else ""
        if stderr is subprocess.STDOUT:
            stdout.write(errors)
        elif stderr is not None:
            stderr.write(errors)
        if stdout is subprocess.PIPE:
            return subprocess.CompletedProcess(list(argv), status, stdout=output.encode("utf-8"))
        stdout.write(output)
        return subprocess.CompletedProcess(list(argv), status)


@pytest.fixture
def fake_commands(monkeypatch: pytest.MonkeyPatch) -> FakeCommands:
    """Replace every external command with an in-process fake."""
    fake = FakeCommands()
    monkeypatch.setattr("ffiprobe.commands.subprocess.run", fake)
    return fake


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    return tmp_path / "probe.log"
