"""Homebrew queries used to locate a brew-provided pkg-config and formula."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ffiprobe import commands
from ffiprobe.models import Available, HardError, Outcome, Unavailable

DEFAULT_PREFIX = "/usr/local"


@dataclass(frozen=True, slots=True)
class Homebrew:
    brew: str = "brew"
    formula: str = "libffi"

    def detect(self, *, log_file: str | Path) -> bool:
        return commands.succeeds([self.brew, "info", self.formula], log_file=log_file)

    def prefix(self, *, log_file: str | Path) -> Outcome[str]:
        result = commands.run([self.brew, "--prefix"], log_file=log_file, capture_stdout=True)
        prefix = result.stdout.strip()
        if not result.succeeded or not prefix:
            return Unavailable(reason=f"`{self.brew} --prefix` exited with status {result.exit_status}")
        return Available(prefix)

    def formula_version(self, *, log_file: str | Path) -> Outcome[str]:
        """Installed version of the formula, from ``brew ls <formula> --versions``.

        The last whitespace-separated token of stdout is the newest installed
        version. Empty stdout means brew knows the formula but nothing is
        installed, which is reported as a hard error whatever the exit status.
        A brew that cannot be started, or that fails with a diagnostic on
        stderr, only makes the version unavailable.
        """
        result = commands.run(
            [self.brew, "ls", self.formula, "--versions"],
            log_file=log_file,
            capture_stdout=True,
        )
        tokens = result.stdout.split()
        if tokens:
            return Available(tokens[-1])
        if result.exit_status == commands.MISSING_EXECUTABLE_STATUS or (
            not result.succeeded and result.combined_output.strip()
        ):
            return Unavailable(
                reason=f"`{self.brew} ls {self.formula}` exited with status {result.exit_status}",
            )
        return HardError(
            message=(
                f"You need to 'brew install {self.formula}' to get a suitably "
                "up-to-date version"
            ),
            hint=f"Run `brew install {self.formula}` and retry.",
        )

    def pkgconfig_dir(self, prefix: str, version: str) -> Path:
        return Path(prefix) / "Cellar" / self.formula / version / "lib" / "pkgconfig"


@dataclass(frozen=True, slots=True)
class BrewContext:
    """A detected Homebrew installation and its resolved prefix."""

    homebrew: Homebrew
    prefix: str = DEFAULT_PREFIX

    def pkg_config_tool(self) -> str:
        return str(Path(self.prefix) / "bin" / "pkg-config")
