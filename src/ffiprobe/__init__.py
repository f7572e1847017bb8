"""Build-time probe for the libffi native dependency."""

from .errors import (
    DependencyMissingError,
    ErrorCode,
    ProbeError,
    RegistryError,
    ToolUnavailableError,
    ValidationError,
)
from .models import (
    Available,
    FlagSet,
    HardError,
    ProbeResult,
    SearchPathEntry,
    SetupData,
    Toolchain,
    Unavailable,
)
from .paths import discover_search_paths, search_header
from .pkgconfig import PkgConfig
from .probe import ProbeWorkspace, compile_and_link
from .report import ProbeReport
from .resolve import LIBFFI, Dependency, Resolution, probe_dependency, resolve_flags

__all__ = [
    "Available",
    "Dependency",
    "DependencyMissingError",
    "ErrorCode",
    "FlagSet",
    "HardError",
    "LIBFFI",
    "PkgConfig",
    "ProbeError",
    "ProbeReport",
    "ProbeResult",
    "ProbeWorkspace",
    "RegistryError",
    "Resolution",
    "SearchPathEntry",
    "SetupData",
    "Toolchain",
    "ToolUnavailableError",
    "Unavailable",
    "ValidationError",
    "compile_and_link",
    "discover_search_paths",
    "probe_dependency",
    "resolve_flags",
    "search_header",
]
