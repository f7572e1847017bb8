"""Progress reporting and structured event log for a probe run."""

from __future__ import annotations

import json
import sys
import warnings
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO

PROGRESS_COLUMN = 34


@dataclass(slots=True)
class ProbeLog:
    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        feature: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "feature": feature,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


def progress_line(name: str, available: bool) -> str:
    dots = "." * max(PROGRESS_COLUMN - len(name), 0)
    status = "available" if available else "unavailable"
    return f"testing for {name}: {dots} {status}"


@dataclass(slots=True)
class ProgressReporter:
    """Writes ``testing for <name>`` lines and mirrors them into a ``ProbeLog``."""

    stream: TextIO = field(default_factory=lambda: sys.stderr)
    log: ProbeLog = field(default_factory=ProbeLog)

    def feature(self, name: str, test: Callable[[], bool]) -> bool:
        prefix = f"testing for {name}:"
        self.stream.write(prefix)
        self.stream.flush()
        available = test()
        self.stream.write(progress_line(name, available)[len(prefix):] + "\n")
        self.stream.flush()
        self.log.log(
            operation="test_feature",
            feature=name,
            message="available" if available else "unavailable",
            extra={"available": available},
        )
        return available

    def warn(
        self,
        message: str,
        *,
        category: type[Warning] = UserWarning,
        feature: str | None = None,
    ) -> None:
        self.stream.write(f"Warning: {message}\n")
        self.stream.flush()
        warnings.warn(message, category, stacklevel=2)
        self.log.log(operation="warning", feature=feature, message=message, level="warning")
