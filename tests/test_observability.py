import io
import json
import warnings
from pathlib import Path

import pytest

from ffiprobe.observability import PROGRESS_COLUMN, ProbeLog, ProgressReporter, progress_line


def test_progress_line_pads_to_fixed_column() -> None:
    short = progress_line("brew", True)
    long = progress_line("pkg-config", False)

    assert short == "testing for brew: " + "." * (PROGRESS_COLUMN - 4) + " available"
    assert long == "testing for pkg-config: " + "." * (PROGRESS_COLUMN - 10) + " unavailable"
    assert short.index(" available") == long.index(" unavailable")


def test_reporter_writes_progress_and_records_outcome() -> None:
    stream = io.StringIO()
    reporter = ProgressReporter(stream=stream)

    assert reporter.feature("libffi", lambda: True) is True
    assert reporter.feature("brew", lambda: False) is False

    assert stream.getvalue().splitlines() == [
        progress_line("libffi", True),
        progress_line("brew", False),
    ]
    assert reporter.log.records[-1:] == [
        {
            "level": "info",
            "operation": "test_feature",
            "feature": "brew",
            "message": "unavailable",
            "extra": {"available": False},
        },
    ]


def test_reporter_prints_prefix_before_running_test() -> None:
    stream = io.StringIO()
    reporter = ProgressReporter(stream=stream)
    seen: list[str] = []

    reporter.feature("libffi", lambda: seen.append(stream.getvalue()) is None)

    assert seen == ["testing for libffi:"]


def test_reporter_warn_issues_warning_and_logs() -> None:
    stream = io.StringIO()
    reporter = ProgressReporter(stream=stream)

    with pytest.warns(UserWarning, match="not available"):
        reporter.warn("pkg-config is not available.", feature="pkg-config")

    assert reporter.log.records[-1]["level"] == "warning"
    assert stream.getvalue() == "Warning: pkg-config is not available.\n"


def test_probe_log_json_lines(tmp_path: Path) -> None:
    log = ProbeLog()
    log.log(operation="resolve", feature="libffi", message="resolved flags", extra={"link_libs": ["-lffi"]})
    log.log(operation="warning", feature=None, message="careful", level="warning")

    path = log.to_json_lines(tmp_path / "nested" / "trace.jsonl")

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["operation"] for line in lines] == ["resolve", "warning"]
    assert json.loads(lines[0])["extra"] == {"link_libs": ["-lffi"]}
    assert "extra" not in json.loads(lines[1])


def test_warning_category_is_configurable() -> None:
    class CustomWarning(UserWarning):
        pass

    reporter = ProgressReporter(stream=io.StringIO())
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        reporter.warn("custom", category=CustomWarning)

    assert any(isinstance(item.message, CustomWarning) for item in caught)
