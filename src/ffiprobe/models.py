"""Core typed dataclasses for search paths, flag sets, and probe outcomes."""

from __future__ import annotations

import shlex
import sys
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Generic, Literal, TypeVar

from ffiprobe.errors import ValidationError

T = TypeVar("T")

OutcomeKind = Literal["available", "unavailable", "error"]


@dataclass(frozen=True, slots=True)
class SearchPathEntry:
    include_dir: Path
    lib_dir: Path


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Exit status and logged output of one external command.

    ``stdout`` is only filled when the command ran with stdout captured apart
    from the log; ``combined_output`` then holds stderr alone.
    """

    exit_status: int
    combined_output: str = ""
    stdout: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0


@dataclass(frozen=True, slots=True)
class FlagSet:
    compile_opts: tuple[str, ...] = ()
    link_libs: tuple[str, ...] = ()

    @classmethod
    def of(cls, compile_opts: Iterable[str], link_libs: Iterable[str]) -> FlagSet:
        return cls(compile_opts=tuple(compile_opts), link_libs=tuple(link_libs))


@dataclass(frozen=True, slots=True)
class SetupData(Mapping[str, tuple[str, ...]]):
    """Ordered, read-only mapping of flag-category name to resolved tokens."""

    entries: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({}),
    )

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Iterable[str]]]) -> SetupData:
        collected: dict[str, tuple[str, ...]] = {}
        for key, tokens in pairs:
            collected[key] = tuple(tokens)
        return cls(entries=MappingProxyType(collected))

    def to_lines(self) -> list[str]:
        return [f"{key}={' '.join(tokens)}" for key, tokens in self.entries.items()]

    def __getitem__(self, key: str) -> tuple[str, ...]:
        return self.entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True, slots=True)
class Available(Generic[T]):
    value: T
    kind: OutcomeKind = "available"


@dataclass(frozen=True, slots=True)
class Unavailable:
    reason: str
    kind: OutcomeKind = "unavailable"


@dataclass(frozen=True, slots=True)
class HardError:
    message: str
    hint: str | None = None
    kind: OutcomeKind = "error"


Outcome = Available[T] | Unavailable | HardError


def _default_exec_name() -> str:
    return "camlprog.exe" if sys.platform.startswith("win") else "a.out"


@dataclass(frozen=True, slots=True)
class Toolchain:
    """Locations of the OCaml build tools used by the compile-link probe."""

    ocamlc: str = "ocamlc"
    ext_obj: str | None = None
    exec_name: str = field(default_factory=_default_exec_name)
    ccomp_type: str = "cc"

    def __post_init__(self) -> None:
        if not self.ocamlc:
            raise ValidationError("Toolchain requires a non-empty ocamlc path.")
        if not self.exec_name:
            raise ValidationError("Toolchain requires a non-empty executable name.")
        if self.ext_obj is None:
            object.__setattr__(self, "ext_obj", ".obj" if self.ccomp_type == "msvc" else ".o")
        elif not self.ext_obj.startswith("."):
            raise ValidationError(
                "Object file extension must start with a dot.",
                hint="Pass the extension as reported by `ocamlc -config`, e.g. `.o`.",
                context={"ext_obj": self.ext_obj},
            )

    @property
    def object_suffix(self) -> str:
        return self.ext_obj or ".o"

    def ocamlc_argv(self) -> list[str]:
        """``ocamlc`` split into argv, so wrappers such as ``ocamlfind ocamlc`` work."""
        if sys.platform.startswith("win"):
            return [self.ocamlc]
        return shlex.split(self.ocamlc)
