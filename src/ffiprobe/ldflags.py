"""Linker flag probe for shared native-code plugins.

Some linkers drop libraries that no object references yet when building a
``.cmxs`` plugin. This probe checks whether ``ocamlopt`` accepts
``-Wl,--no-as-needed`` and records the flag list for the downstream build.
"""

from __future__ import annotations

import contextlib
import re
from collections.abc import Sequence
from pathlib import Path

from ffiprobe import commands
from ffiprobe.errors import ToolUnavailableError
from ffiprobe.probe import silent_remove

NO_AS_NEEDED = "-Wl,--no-as-needed"
PROBE_STEM = "as_needed_test"
DEFAULT_SEXP_PATH = "ctypes-ldflags.sxp"

_BARE_ATOM = re.compile(r'^[^\s()";]+$')


def probe_no_as_needed(
    *,
    workdir: str | Path,
    log_file: str | Path,
    ocamlopt: str = "ocamlopt",
) -> tuple[str, ...]:
    """Flags that make ``ocamlopt -shared`` keep every linked library.

    A rejected flag yields no flags. An ``ocamlopt`` that cannot be started
    raises ``ToolUnavailableError``.
    """
    root = Path(workdir)
    source = root / f"{PROBE_STEM}.ml"
    plugin = root / f"{PROBE_STEM}.cmxs"
    with contextlib.ExitStack() as stack:
        for suffix in (".ml", ".cmi", ".cmx", ".cmxs", ".o", ".obj"):
            stack.callback(silent_remove, root / f"{PROBE_STEM}{suffix}")
        source.write_text("", encoding="utf-8")
        result = commands.run(
            [ocamlopt, "-shared", "-cclib", NO_AS_NEEDED, source.name, "-o", plugin.name],
            log_file=log_file,
            cwd=root,
        )
    if result.exit_status == commands.MISSING_EXECUTABLE_STATUS:
        raise ToolUnavailableError(
            f"Cannot run {ocamlopt}.",
            hint="Install the OCaml native-code compiler or pass --ocamlopt.",
            context={"ocamlopt": ocamlopt},
        )
    return (NO_AS_NEEDED,) if result.succeeded else ()


def sexp_atom(value: str) -> str:
    if _BARE_ATOM.match(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_sexp(flags: Sequence[str]) -> str:
    return "(" + " ".join(sexp_atom(flag) for flag in flags) + ")"


def write_sexp(path: str | Path, flags: Sequence[str]) -> Path:
    output_path = Path(path)
    output_path.write_text(render_sexp(flags), encoding="utf-8")
    return output_path
