"""Synchronous external command execution with output captured to a log file."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from ffiprobe.models import ProbeResult

MISSING_EXECUTABLE_STATUS = 127


def run(
    argv: Sequence[str],
    *,
    log_file: str | Path,
    env: Mapping[str, str] | None = None,
    cwd: str | Path | None = None,
    capture_stdout: bool = False,
) -> ProbeResult:
    """Run ``argv`` to completion with stdout and stderr written to ``log_file``.

    With ``capture_stdout`` only stderr goes to the log and stdout is returned
    on its own in ``ProbeResult.stdout``, so diagnostics never mix with the
    value being read. ``env`` entries are layered over the current process
    environment. A command whose executable cannot be started is reported
    with exit status 127 instead of raising.
    """
    log_path = Path(log_file)
    merged_env = None
    if env is not None:
        merged_env = {**os.environ, **env}

    captured = ""
    with log_path.open("w", encoding="utf-8") as log:
        try:
            completed = subprocess.run(
                list(argv),
                stdout=subprocess.PIPE if capture_stdout else log,
                stderr=log if capture_stdout else subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                env=merged_env,
                cwd=cwd,
                check=False,
            )
        except OSError as exc:
            log.write(f"{argv[0]}: {exc.strerror or exc}\n")
            status = MISSING_EXECUTABLE_STATUS
        else:
            status = completed.returncode
            if capture_stdout and completed.stdout:
                captured = completed.stdout.decode("utf-8", errors="replace")

    output = log_path.read_text(encoding="utf-8", errors="replace")
    return ProbeResult(exit_status=status, combined_output=output, stdout=captured)


def succeeds(
    argv: Sequence[str],
    *,
    log_file: str | Path,
    env: Mapping[str, str] | None = None,
    cwd: str | Path | None = None,
) -> bool:
    return run(argv, log_file=log_file, env=env, cwd=cwd).succeeded
