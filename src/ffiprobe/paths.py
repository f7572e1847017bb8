"""Search path discovery and header lookup.

libffi is frequently installed by port systems into non-standard prefixes,
so the candidate list combines ``C_INCLUDE_PATH`` and ``LIBRARY_PATH`` with
a fixed set of conventional prefixes.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from ffiprobe.models import SearchPathEntry

DEFAULT_PREFIXES = (
    "/usr",
    "/usr/local",
    "/opt",
    "/opt/local",
    "/sw",
    "/mingw",
)


def is_windows() -> bool:
    return sys.platform.startswith("win")


def path_separator(*, windows: bool | None = None) -> str:
    if windows is None:
        windows = is_windows()
    return ";" if windows else ":"


def split_path_list(value: str, *, windows: bool | None = None) -> list[str]:
    """Split a path list, treating runs of separators as one."""
    sep = path_separator(windows=windows)
    return [item for item in value.split(sep) if item]


def default_search_paths() -> tuple[SearchPathEntry, ...]:
    return tuple(
        SearchPathEntry(include_dir=Path(prefix) / "include", lib_dir=Path(prefix) / "lib")
        for prefix in DEFAULT_PREFIXES
    )


def discover_search_paths(
    environ: Mapping[str, str] | None = None,
    *,
    windows: bool | None = None,
) -> list[SearchPathEntry]:
    """Build the ordered (include, lib) candidate list.

    ``C_INCLUDE_PATH`` entries come first, then ``LIBRARY_PATH`` entries,
    then the conventional prefixes. Duplicates are kept.
    """
    env = os.environ if environ is None else environ
    entries: list[SearchPathEntry] = []

    for item in split_path_list(env.get("C_INCLUDE_PATH", ""), windows=windows):
        include_dir = Path(item)
        entries.append(SearchPathEntry(include_dir=include_dir, lib_dir=include_dir / ".." / "lib"))

    for item in split_path_list(env.get("LIBRARY_PATH", ""), windows=windows):
        lib_dir = Path(item)
        entries.append(SearchPathEntry(include_dir=lib_dir / ".." / "include", lib_dir=lib_dir))

    entries.extend(default_search_paths())
    return entries


def search_header(
    header: str,
    search_paths: Sequence[SearchPathEntry],
) -> SearchPathEntry | None:
    for entry in search_paths:
        if (entry.include_dir / header).exists():
            return entry
    return None
