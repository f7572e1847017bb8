"""Compile-and-link probe for native dependencies.

A probe builds a tiny bytecode executable in ``-custom`` mode: an OCaml host
stub declares an external primitive and a C stub implements it by calling
into the native library. If ``ocamlc`` manages to compile and link both, the
library is present and its headers match; the executable is never run.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType

from ffiprobe import commands
from ffiprobe.models import FlagSet, Toolchain

HOST_STUB = """
external test : unit -> unit = "ffi_test"
let () = test ()
"""

LIBFFI_STUB = """
#include <caml/mlvalues.h>
#include <ffi.h>

CAMLprim value ffi_test()
{
  ffi_prep_closure(NULL, NULL, NULL, NULL);
  return Val_unit;
}
"""


def silent_remove(path: str | Path) -> None:
    with contextlib.suppress(OSError):
        os.remove(path)


def _write_temp(prefix: str, suffix: str, content: str = "") -> Path:
    fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(content)
    return Path(name)


@contextlib.contextmanager
def scratch_file(prefix: str, suffix: str, content: str = "") -> Iterator[Path]:
    """A uniquely named temporary file removed when the scope ends."""
    path = _write_temp(prefix, suffix, content)
    try:
        yield path
    finally:
        silent_remove(path)


@dataclass(slots=True)
class ProbeWorkspace:
    """Owns the files shared by every probe of one run.

    The host stub, its compiled interface and bytecode, the compiler log, and
    the executable that ``ocamlc`` leaves in the working directory are all
    removed on exit, whether the run succeeded or raised.
    """

    toolchain: Toolchain
    cwd: Path = field(default_factory=Path.cwd)
    host_stub: Path | None = None
    log_file: Path | None = None
    _stack: contextlib.ExitStack | None = None

    def __enter__(self) -> ProbeWorkspace:
        stack = contextlib.ExitStack()
        try:
            stack.callback(silent_remove, self.cwd / self.toolchain.exec_name)
            self.host_stub = stack.enter_context(scratch_file("ffi_caml", ".ml", HOST_STUB))
            stack.callback(silent_remove, self.host_stub.with_suffix(".cmi"))
            stack.callback(silent_remove, self.host_stub.with_suffix(".cmo"))
            self.log_file = stack.enter_context(scratch_file("ffi_output", ".log"))
        except BaseException:
            stack.close()
            raise
        self._stack = stack
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._stack is not None:
            self._stack.close()
            self._stack = None

    def require_log(self) -> Path:
        if self.log_file is None:
            raise RuntimeError("ProbeWorkspace is not active.")
        return self.log_file

    def require_host_stub(self) -> Path:
        if self.host_stub is None:
            raise RuntimeError("ProbeWorkspace is not active.")
        return self.host_stub


def compile_command(
    flags: FlagSet,
    *,
    toolchain: Toolchain,
    native_source: Path,
    host_source: Path,
) -> list[str]:
    command = [*toolchain.ocamlc_argv(), "-custom"]
    for opt in flags.compile_opts:
        command.extend(["-ccopt", opt])
    command.extend([str(native_source), str(host_source)])
    for lib in flags.link_libs:
        command.extend(["-cclib", lib])
    return command


def compile_and_link(
    flags: FlagSet,
    native_stub: str,
    *,
    workspace: ProbeWorkspace,
    name: str = "native",
) -> bool:
    """Build ``native_stub`` together with the host stub using ``flags``.

    The C source is written to a temporary ``<name>_stub*.c`` file.

    Returns whether ``ocamlc`` exited with status zero. The C source and the
    object file derived from it are removed before returning.
    """
    toolchain = workspace.toolchain
    with contextlib.ExitStack() as stack:
        native_source = stack.enter_context(scratch_file(f"{name}_stub", ".c", native_stub))
        stack.callback(
            silent_remove,
            workspace.cwd / (native_source.stem + toolchain.object_suffix),
        )
        command = compile_command(
            flags,
            toolchain=toolchain,
            native_source=native_source,
            host_source=workspace.require_host_stub(),
        )
        return commands.succeeds(command, log_file=workspace.require_log(), cwd=workspace.cwd)
