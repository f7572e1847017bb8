"""Flag resolution policy for a native dependency.

Precedence, per flag axis: ``<NAME>_CFLAGS`` / ``<NAME>_LIBS`` environment
overrides, then pkg-config, then a header search over the discovered paths,
then a bare ``-l<name>`` that relies on the default linker search.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from ffiprobe.models import FlagSet, SearchPathEntry, SetupData
from ffiprobe.paths import search_header
from ffiprobe.probe import LIBFFI_STUB, ProbeWorkspace, compile_and_link


@dataclass(frozen=True, slots=True)
class Dependency:
    name: str
    header: str
    link_name: str
    stub: str

    @property
    def env_prefix(self) -> str:
        return self.name.upper()

    @property
    def cflags_var(self) -> str:
        return f"{self.env_prefix}_CFLAGS"

    @property
    def libs_var(self) -> str:
        return f"{self.env_prefix}_LIBS"

    @property
    def opt_key(self) -> str:
        return f"{self.name}_opt"

    @property
    def lib_key(self) -> str:
        return f"{self.name}_lib"


LIBFFI = Dependency(name="libffi", header="ffi.h", link_name="ffi", stub=LIBFFI_STUB)


@dataclass(frozen=True, slots=True)
class Resolution:
    flags: FlagSet
    setup: SetupData
    available: bool


def override_flags(
    dependency: Dependency,
    environ: Mapping[str, str] | None = None,
) -> tuple[tuple[str, ...] | None, tuple[str, ...] | None]:
    env = os.environ if environ is None else environ

    def get(var: str) -> tuple[str, ...] | None:
        value = env.get(var)
        return None if value is None else tuple(value.split())

    return get(dependency.cflags_var), get(dependency.libs_var)


def header_search_flags(
    dependency: Dependency,
    search_paths: Sequence[SearchPathEntry],
) -> FlagSet:
    found = search_header(dependency.header, search_paths)
    if found is None:
        return FlagSet(link_libs=(f"-l{dependency.link_name}",))
    return FlagSet(
        compile_opts=(f"-I{found.include_dir}",),
        link_libs=(f"-L{found.lib_dir}", f"-l{dependency.link_name}"),
    )


def discover_flags(
    dependency: Dependency,
    *,
    search_paths: Sequence[SearchPathEntry],
    metadata: FlagSet | None = None,
) -> FlagSet:
    if metadata is not None:
        return metadata
    return header_search_flags(dependency, search_paths)


def resolve_flags(
    dependency: Dependency,
    *,
    search_paths: Sequence[SearchPathEntry],
    query_metadata: Callable[[str], FlagSet | None] | None = None,
    environ: Mapping[str, str] | None = None,
) -> FlagSet:
    """Pick the flags to probe with.

    ``query_metadata`` is only consulted when at least one override is unset,
    and each set override replaces the discovered value on its own axis.
    """
    env_opts, env_libs = override_flags(dependency, environ)
    if env_opts is not None and env_libs is not None:
        return FlagSet(compile_opts=env_opts, link_libs=env_libs)

    metadata = query_metadata(dependency.name) if query_metadata is not None else None
    discovered = discover_flags(dependency, search_paths=search_paths, metadata=metadata)
    return FlagSet(
        compile_opts=env_opts if env_opts is not None else discovered.compile_opts,
        link_libs=env_libs if env_libs is not None else discovered.link_libs,
    )


def probe_dependency(
    dependency: Dependency,
    *,
    workspace: ProbeWorkspace,
    search_paths: Sequence[SearchPathEntry],
    query_metadata: Callable[[str], FlagSet | None] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Resolution:
    """Resolve flags, record them, and confirm them with a compile-link probe."""
    flags = resolve_flags(
        dependency,
        search_paths=search_paths,
        query_metadata=query_metadata,
        environ=environ,
    )
    setup = SetupData.from_pairs(
        [
            (dependency.opt_key, flags.compile_opts),
            (dependency.lib_key, flags.link_libs),
        ],
    )
    available = compile_and_link(
        flags,
        dependency.stub,
        workspace=workspace,
        name=dependency.name,
    )
    return Resolution(flags=flags, setup=setup, available=available)


def install_guidance(dependency: Dependency, *, example_prefix: str = "/opt/local") -> str:
    prefix = example_prefix.rstrip("/")
    return (
        f"Please install {dependency.name} and retry. If it is installed in a "
        "non-standard location\n"
        f"or needs special flags, set the environment variables {dependency.cflags_var} "
        f"and {dependency.libs_var}\n"
        "accordingly and retry.\n"
        "\n"
        f"For example, if {dependency.name} is installed in {prefix}, you can type:\n"
        "\n"
        f"export {dependency.cflags_var}=-I{prefix}/include\n"
        f"export {dependency.libs_var}=\"-L{prefix}/lib -l{dependency.link_name}\"\n"
    )
