"""pkg-config queries for compiler and linker flags."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ffiprobe import commands
from ffiprobe.errors import RegistryError
from ffiprobe.homebrew import BrewContext
from ffiprobe.models import Available, FlagSet, HardError


@dataclass(frozen=True, slots=True)
class PkgConfig:
    tool: str = "pkg-config"
    env: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def for_homebrew(cls, prefix: str, *, pkgconfig_dir: Path | None = None) -> PkgConfig:
        env = {"PKG_CONFIG_PATH": str(pkgconfig_dir)} if pkgconfig_dir is not None else {}
        return cls(tool=str(Path(prefix) / "bin" / "pkg-config"), env=env)

    def available(self, *, log_file: str | Path) -> bool:
        return commands.succeeds([self.tool, "--version"], log_file=log_file, env=self._env())

    def tokens(self, *args: str, log_file: str | Path) -> tuple[str, ...] | None:
        result = commands.run([self.tool, *args], log_file=log_file, env=self._env())
        if not result.succeeded:
            return None
        return tuple(result.combined_output.split())

    def query(self, name: str, *, log_file: str | Path) -> FlagSet | None:
        """Compile and link flags for ``name``, or ``None`` unless both lookups succeed."""
        compile_opts = self.tokens("--cflags", name, log_file=log_file)
        link_libs = self.tokens("--libs", name, log_file=log_file)
        if compile_opts is None or link_libs is None:
            return None
        return FlagSet(compile_opts=compile_opts, link_libs=link_libs)

    def _env(self) -> Mapping[str, str] | None:
        return dict(self.env) if self.env else None


def query_flags(
    name: str,
    *,
    pkg_config: PkgConfig,
    log_file: str | Path,
    brew: BrewContext | None = None,
) -> FlagSet | None:
    """Query pkg-config, pointing it at the brew Cellar when Homebrew is in use.

    A failing ``brew`` invocation only disables this strategy. A formula that
    brew knows about but has not installed raises ``RegistryError``.
    """
    if brew is None:
        return pkg_config.query(name, log_file=log_file)

    homebrew = brew.homebrew
    version = homebrew.formula_version(log_file=log_file)
    if isinstance(version, HardError):
        raise RegistryError(
            version.message,
            hint=version.hint,
            context={"formula": homebrew.formula, "operation": "pkg-config"},
        )
    if not isinstance(version, Available):
        return None

    brewed = PkgConfig.for_homebrew(
        brew.prefix,
        pkgconfig_dir=homebrew.pkgconfig_dir(brew.prefix, version.value),
    )
    return brewed.query(name, log_file=log_file)


class PkgConfigUnavailableWarning(UserWarning):
    """Warning raised when no usable pkg-config was found."""
