"""Command-line entry points.

``ffiprobe-discover`` checks for libffi and prints the resolved flags as
``key=value`` lines on stdout for the surrounding build to parse. Progress
and diagnostics go to stderr only.

``ffiprobe-ldflags`` writes the extra linker flags needed for shared
plugins as an S-expression file.
"""

from __future__ import annotations

import argparse
import functools
import os
import sys
import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TextIO

from ffiprobe.errors import (
    DependencyMissingError,
    RegistryError,
    ToolUnavailableError,
    ValidationError,
)
from ffiprobe.homebrew import BrewContext, Homebrew
from ffiprobe.ldflags import DEFAULT_SEXP_PATH, probe_no_as_needed, write_sexp
from ffiprobe.models import Available, SetupData, Toolchain, Unavailable
from ffiprobe.observability import ProgressReporter
from ffiprobe.paths import discover_search_paths
from ffiprobe.pkgconfig import PkgConfig, PkgConfigUnavailableWarning, query_flags
from ffiprobe.probe import ProbeWorkspace, scratch_file
from ffiprobe.report import ProbeReport
from ffiprobe.resolve import LIBFFI, Dependency, Resolution, install_guidance, probe_dependency


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ffiprobe-discover",
        description="check for external C libraries and available features",
        allow_abbrev=False,
    )
    parser.add_argument("-ocamlc", dest="ocamlc", default="ocamlc", metavar="<path>", help="ocamlc")
    parser.add_argument(
        "-ext-obj",
        dest="ext_obj",
        default=None,
        metavar="<ext>",
        help="C object files extension",
    )
    parser.add_argument(
        "-exec-name",
        dest="exec_name",
        default=None,
        metavar="<name>",
        help="name of the executable produced by ocamlc",
    )
    parser.add_argument(
        "-ccomp-type",
        dest="ccomp_type",
        default="cc",
        metavar="<ccomp-type>",
        help="C compiler type",
    )
    parser.add_argument(
        "-report",
        dest="report",
        type=Path,
        default=None,
        metavar="<path>",
        help="write a JSON (or .cbor) report of the run",
    )
    parser.add_argument(
        "-trace",
        dest="trace",
        type=Path,
        default=None,
        metavar="<path>",
        help="write the structured event log as JSON lines",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse options; stray positional arguments are ignored."""
    parser = build_parser()
    args, extras = parser.parse_known_args(argv)
    unknown = [arg for arg in extras if arg.startswith("-")]
    if unknown:
        parser.error(f"unrecognized arguments: {' '.join(unknown)}")
    return args


def toolchain_from_args(args: argparse.Namespace) -> Toolchain:
    kwargs: dict[str, str] = {"ocamlc": args.ocamlc, "ccomp_type": args.ccomp_type}
    if args.ext_obj is not None:
        kwargs["ext_obj"] = args.ext_obj
    if args.exec_name is not None:
        kwargs["exec_name"] = args.exec_name
    return Toolchain(**kwargs)


def detect_pkg_config(
    reporter: ProgressReporter,
    *,
    homebrew: Homebrew | None,
    log_file: Path,
) -> tuple[PkgConfig, BrewContext | None, bool]:
    """Locate pkg-config, preferring the Homebrew one when brew is present."""
    if homebrew is None:
        pkg_config = PkgConfig()
        return pkg_config, None, reporter.feature(
            "pkg-config", lambda: pkg_config.available(log_file=log_file)
        )

    prefix = homebrew.prefix(log_file=log_file)
    if not isinstance(prefix, Available):
        reporter.log.log(
            operation="brew_prefix",
            feature="pkg-config",
            message=prefix.reason if isinstance(prefix, Unavailable) else prefix.message,
            level="warning",
        )
        return PkgConfig(), None, reporter.feature("pkg-config", lambda: False)

    brew = BrewContext(homebrew=homebrew, prefix=prefix.value)
    pkg_config = PkgConfig(tool=brew.pkg_config_tool())
    return pkg_config, brew, reporter.feature(
        "pkg-config", lambda: pkg_config.available(log_file=log_file)
    )


def run_discovery(
    dependency: Dependency,
    *,
    toolchain: Toolchain,
    reporter: ProgressReporter,
    environ: Mapping[str, str],
    cwd: Path | None = None,
) -> tuple[Resolution | None, bool, bool]:
    """Run the detection pipeline; returns the resolution and the brew/pkg-config flags."""
    workspace_kwargs = {"cwd": cwd} if cwd is not None else {}
    with ProbeWorkspace(toolchain=toolchain, **workspace_kwargs) as workspace:
        log_file = workspace.require_log()
        homebrew = Homebrew(formula=dependency.name)
        is_homebrew = reporter.feature("brew", lambda: homebrew.detect(log_file=log_file))
        pkg_config, brew, have_pkg_config = detect_pkg_config(
            reporter,
            homebrew=homebrew if is_homebrew else None,
            log_file=log_file,
        )

        query_metadata = None
        if have_pkg_config:
            query_metadata = functools.partial(
                query_flags,
                pkg_config=pkg_config,
                brew=brew,
                log_file=log_file,
            )

        resolved: list[Resolution] = []

        def test() -> bool:
            resolution = probe_dependency(
                dependency,
                workspace=workspace,
                search_paths=discover_search_paths(environ),
                query_metadata=query_metadata,
                environ=environ,
            )
            resolved.append(resolution)
            return resolution.available

        reporter.feature(dependency.name, test)
        resolution = resolved[0] if resolved else None
        if resolution is not None:
            reporter.log.log(
                operation="resolve",
                feature=dependency.name,
                message="resolved flags",
                extra={
                    "compile_opts": list(resolution.flags.compile_opts),
                    "link_libs": list(resolution.flags.link_libs),
                },
            )
        return resolution, is_homebrew, have_pkg_config


def discover_main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    cwd: Path | None = None,
) -> int:
    out = sys.stdout if stdout is None else stdout
    err = sys.stderr if stderr is None else stderr
    env = os.environ if environ is None else environ
    args = parse_args(argv)

    try:
        toolchain = toolchain_from_args(args)
    except ValidationError as exc:
        print(str(exc), file=err)
        return 2

    dependency = LIBFFI
    reporter = ProgressReporter(stream=err)
    try:
        resolution, is_homebrew, have_pkg_config = run_discovery(
            dependency,
            toolchain=toolchain,
            reporter=reporter,
            environ=env,
            cwd=cwd,
        )
    except RegistryError as exc:
        print("", file=err)
        print(str(exc), file=err)
        reporter.log.log(
            operation="resolve",
            feature=dependency.name,
            message=str(exc),
            level="error",
        )
        report = ProbeReport(dependency=dependency.name, available=False, error=exc.to_dict())
        _write_outputs(args, report=report, reporter=reporter)
        return 1

    if not have_pkg_config:
        reporter.warn(
            "the 'pkg-config' command is not available.",
            category=PkgConfigUnavailableWarning,
            feature="pkg-config",
        )

    setup = resolution.setup if resolution is not None else SetupData()
    available = resolution is not None and resolution.available
    error = None
    if not available:
        missing = DependencyMissingError(
            f"The following required C libraries are missing: {dependency.name}.",
            hint=install_guidance(dependency),
            context={"ocamlc": toolchain.ocamlc},
        )
        error = missing.to_dict()
        print(str(missing), file=err)

    report = ProbeReport(
        dependency=dependency.name,
        available=available,
        setup=dict(setup),
        homebrew=is_homebrew,
        pkg_config=have_pkg_config,
        error=error,
    )
    _write_outputs(args, report=report, reporter=reporter)
    if not available:
        return 1

    for line in setup.to_lines():
        print(line, file=out)
    return 0


def _write_outputs(
    args: argparse.Namespace,
    *,
    report: ProbeReport,
    reporter: ProgressReporter,
) -> None:
    if args.report is not None:
        report.write(args.report)
    if args.trace is not None:
        reporter.log.to_json_lines(args.trace)


def ldflags_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ffiprobe-ldflags",
        description="check whether shared plugins need -Wl,--no-as-needed",
    )
    parser.add_argument("--ocamlopt", default="ocamlopt", help="ocamlopt executable")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path(DEFAULT_SEXP_PATH),
        help="S-expression file to write",
    )
    args = parser.parse_args(argv)

    with tempfile.TemporaryDirectory(prefix="ffiprobe-ldflags-") as workdir:
        with scratch_file("ffi_output", ".log") as log_file:
            try:
                flags = probe_no_as_needed(
                    workdir=workdir, log_file=log_file, ocamlopt=args.ocamlopt
                )
            except ToolUnavailableError as exc:
                print(str(exc), file=sys.stderr)
                return 1
    write_sexp(args.output, flags)
    return 0


def main() -> None:
    sys.exit(discover_main())


def ldflags_entry() -> None:
    sys.exit(ldflags_main())
