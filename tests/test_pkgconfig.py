from pathlib import Path

import pytest

from ffiprobe.errors import RegistryError
from ffiprobe.homebrew import BrewContext, Homebrew
from ffiprobe.models import Available, FlagSet, HardError, Unavailable
from ffiprobe.pkgconfig import PkgConfig, query_flags


def _pkg_config_replies(cflags: tuple[int, str], libs: tuple[int, str]):
    def handler(invocation):
        if "--cflags" in invocation.argv:
            return cflags
        if "--libs" in invocation.argv:
            return libs
        return (0, "0.29.2\n")

    return handler


def test_query_splits_cflags_and_libs(fake_commands, log_file: Path) -> None:
    fake_commands.on(
        "pkg-config",
        _pkg_config_replies((0, "-I/usr/lib/libffi/include  \n"), (0, "-L/usr/lib -lffi\n")),
    )

    flags = PkgConfig().query("libffi", log_file=log_file)

    assert flags == FlagSet(compile_opts=("-I/usr/lib/libffi/include",), link_libs=("-L/usr/lib", "-lffi"))
    assert [call.argv[1:] for call in fake_commands.calls_to("pkg-config")] == [
        ["--cflags", "libffi"],
        ["--libs", "libffi"],
    ]


@pytest.mark.parametrize(
    ("cflags", "libs"),
    [
        ((1, "Package libffi was not found"), (0, "-lffi")),
        ((0, ""), (1, "Package libffi was not found")),
    ],
)
def test_query_requires_both_lookups(fake_commands, log_file: Path, cflags, libs) -> None:
    fake_commands.on("pkg-config", _pkg_config_replies(cflags, libs))

    assert PkgConfig().query("libffi", log_file=log_file) is None


def test_empty_output_is_an_empty_token_list(fake_commands, log_file: Path) -> None:
    fake_commands.on("pkg-config", _pkg_config_replies((0, "\n"), (0, "-lffi\n")))

    assert PkgConfig().query("libffi", log_file=log_file) == FlagSet((), ("-lffi",))


def test_available_checks_version(fake_commands, log_file: Path) -> None:
    assert PkgConfig().available(log_file=log_file) is False

    fake_commands.reply("pkg-config", 0, "0.29.2\n")

    assert PkgConfig().available(log_file=log_file) is True
    assert fake_commands.calls_to("pkg-config")[-1].argv == ["pkg-config", "--version"]


def test_homebrew_variant_sets_pkg_config_path(fake_commands, log_file: Path) -> None:
    fake_commands.reply("brew", 0, "libffi 3.4.2 3.4.6\n")
    fake_commands.on("pkg-config", _pkg_config_replies((0, "-I/brew/include"), (0, "-lffi")))
    brew = BrewContext(homebrew=Homebrew(), prefix="/opt/homebrew")

    flags = query_flags("libffi", pkg_config=PkgConfig(), brew=brew, log_file=log_file)

    assert flags == FlagSet(("-I/brew/include",), ("-lffi",))
    call = fake_commands.calls_to("pkg-config")[0]
    assert call.argv[0] == str(Path("/opt/homebrew") / "bin" / "pkg-config")
    assert call.env is not None
    assert call.env["PKG_CONFIG_PATH"] == str(
        Path("/opt/homebrew") / "Cellar" / "libffi" / "3.4.6" / "lib" / "pkgconfig"
    )
    assert fake_commands.calls_to("brew")[0].argv == ["brew", "ls", "libffi", "--versions"]


def test_homebrew_failure_disables_metadata(fake_commands, log_file: Path) -> None:
    fake_commands.reply("brew", 1, "", "Error: unknown command\n")
    fake_commands.reply("pkg-config", 0, "-lffi")
    brew = BrewContext(homebrew=Homebrew(), prefix="/usr/local")

    assert query_flags("libffi", pkg_config=PkgConfig(), brew=brew, log_file=log_file) is None
    assert fake_commands.calls_to("pkg-config") == []


def test_homebrew_known_but_not_installed_raises(fake_commands, log_file: Path) -> None:
    fake_commands.reply("brew", 0, "")
    brew = BrewContext(homebrew=Homebrew(), prefix="/usr/local")

    with pytest.raises(RegistryError) as excinfo:
        query_flags("libffi", pkg_config=PkgConfig(), brew=brew, log_file=log_file)

    assert "brew install libffi" in str(excinfo.value)
    assert excinfo.value.code == "E_REGISTRY"
    assert excinfo.value.context["formula"] == "libffi"


def test_homebrew_outcomes_are_three_way(fake_commands, log_file: Path) -> None:
    homebrew = Homebrew()

    assert isinstance(homebrew.prefix(log_file=log_file), Unavailable)

    fake_commands.reply("brew", 0, "/opt/homebrew\n")
    assert homebrew.prefix(log_file=log_file) == Available("/opt/homebrew")
    assert homebrew.formula_version(log_file=log_file) == Available("/opt/homebrew")

    fake_commands.reply("brew", 0, "   \n")
    outcome = homebrew.formula_version(log_file=log_file)
    assert isinstance(outcome, HardError)
    assert outcome.kind == "error"


def test_homebrew_detect_uses_brew_info(fake_commands, log_file: Path) -> None:
    assert Homebrew().detect(log_file=log_file) is False

    fake_commands.reply("brew", 0, "libffi: stable 3.4.6\n")

    assert Homebrew().detect(log_file=log_file) is True
    assert fake_commands.calls_to("brew")[-1].argv == ["brew", "info", "libffi"]
    assert BrewContext(Homebrew(), "/usr/local").pkg_config_tool() == str(
        Path("/usr/local") / "bin" / "pkg-config"
    )


def test_homebrew_prefix_ignores_stderr_warnings(fake_commands, log_file: Path) -> None:
    fake_commands.reply("brew", 0, "/opt/homebrew\n", "Warning: update available\n")

    assert Homebrew().prefix(log_file=log_file) == Available("/opt/homebrew")
    assert "Warning: update available" in log_file.read_text(encoding="utf-8")


def test_homebrew_version_ignores_stderr_warnings(fake_commands, log_file: Path) -> None:
    fake_commands.reply("brew", 0, "libffi 3.4.6\n", "Warning: libffi is deprecated\n")

    assert Homebrew().formula_version(log_file=log_file) == Available("3.4.6")


def test_homebrew_not_installed_exit_status_is_a_hard_error(fake_commands, log_file: Path) -> None:
    fake_commands.reply("brew", 1, "")

    outcome = Homebrew().formula_version(log_file=log_file)

    assert isinstance(outcome, HardError)
    assert outcome.kind == "error"

    brew = BrewContext(homebrew=Homebrew(), prefix="/usr/local")
    with pytest.raises(RegistryError):
        query_flags("libffi", pkg_config=PkgConfig(), brew=brew, log_file=log_file)


def test_homebrew_version_unavailable_when_brew_cannot_start(fake_commands, log_file: Path) -> None:
    outcome = Homebrew().formula_version(log_file=log_file)

    assert isinstance(outcome, Unavailable)
    assert "127" in outcome.reason
