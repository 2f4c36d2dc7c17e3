import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from sysrefresh import unix
from sysrefresh.unix import BrewVariant
from sysrefresh.utils import Context, SkipStep


def _fake_which(available):
    def fake(name, *args, **kwargs):
        return f"/usr/bin/{name}" if name in available else None

    return fake


@pytest.fixture
def tools(monkeypatch):
    def install(*names):
        monkeypatch.setattr(shutil, "which", _fake_which(set(names)))

    return install


def _dry(**options):
    return Context(dry_run=True, options=options)


def test_nix_args_pinned():
    assert unix.nix_args() == ["--extra-experimental-features", "nix-command"]


def test_brew_binary_names():
    assert BrewVariant.PATH.binary_name() == "brew"
    assert BrewVariant.MAC_INTEL.binary_name() == "/usr/local/bin/brew"
    assert BrewVariant.MAC_ARM.binary_name() == "/opt/homebrew/bin/brew"


def test_brew_path_title_and_command():
    assert BrewVariant.PATH.step_title() == "Brew"
    assert BrewVariant.PATH.execute(_dry()).argv == ["brew"]


def test_nix_profile_dir_not_in_bin(tmp_path):
    assert unix.nix_profile_dir(tmp_path / "elsewhere" / "nix") is None


def test_nix_profile_dir_follows_symlink(tmp_path):
    store = tmp_path / "store" / "abc-user-environment"
    (store / "bin").mkdir(parents=True)
    (store / "bin" / "nix").touch()
    links = tmp_path / "links"
    links.mkdir()
    (links / "default").symlink_to(store)

    result = unix.nix_profile_dir(links / "default" / "bin" / "nix")
    assert result is not None
    assert result.name == "abc-user-environment"


def test_nix_profile_dir_not_user_environment(tmp_path):
    plain = tmp_path / "plain"
    (plain / "bin").mkdir(parents=True)
    assert unix.nix_profile_dir(plain / "bin" / "nix") is None


def test_missing_binary_skips(tools):
    tools()
    with pytest.raises(SkipStep):
        unix.run_yadm(_dry())


def test_run_yadm_dry(tools, capsys):
    tools("yadm")
    unix.run_yadm(_dry())
    assert "/usr/bin/yadm pull" in capsys.readouterr().out


def test_run_asdf_dry(tools, capsys):
    tools("asdf")
    unix.run_asdf(_dry())
    out = capsys.readouterr().out
    assert "/usr/bin/asdf update" in out
    assert "/usr/bin/asdf plugin update --all" in out


def test_run_home_manager_extra_args(tools, capsys):
    tools("home-manager")
    unix.run_home_manager(_dry(home_manager=["-b", "bak"]))
    assert "/usr/bin/home-manager switch -b bak" in capsys.readouterr().out


def test_run_pkgin_requires_sudo(tools):
    tools("pkgin")
    with pytest.raises(SkipStep):
        unix.run_pkgin(_dry())


def test_run_pyenv_missing_root(tools, monkeypatch, tmp_path):
    tools("pyenv")
    monkeypatch.setenv("PYENV_ROOT", str(tmp_path / "missing"))
    with pytest.raises(SkipStep, match="PYENV_ROOT"):
        unix.run_pyenv(_dry())


def test_run_pyenv_not_git(tools, monkeypatch, tmp_path):
    tools("pyenv")
    monkeypatch.setenv("PYENV_ROOT", str(tmp_path))
    with pytest.raises(SkipStep, match="not a git repository"):
        unix.run_pyenv(_dry())


def test_run_bun_packages_without_packages(tools, monkeypatch, tmp_path, capsys):
    tools("bun")
    monkeypatch.setenv("BUN_INSTALL", str(tmp_path))
    unix.run_bun_packages(_dry())
    out = capsys.readouterr().out
    assert "No global packages installed" in out
    assert "-g update" not in out


def test_run_oh_my_bash_dry(tools, monkeypatch, tmp_path, capsys):
    tools("bash")
    monkeypatch.setenv("OSH", str(tmp_path))
    unix.run_oh_my_bash(_dry())
    assert f"{tmp_path}/tools/upgrade.sh" in capsys.readouterr().out


def test_run_bashit_dry(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / ".bash_it").mkdir()
    unix.run_bashit(_dry(bashit_branch="master"))
    assert "bash-it update master" in capsys.readouterr().out


def test_run_sdkman_selfupdate(tools, monkeypatch, tmp_path, capsys):
    tools("bash")
    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "sdkman-init.sh").touch()
    (tmp_path / "etc").mkdir()
    (tmp_path / "etc" / "config").write_text("sdkman_selfupdate_feature=true\n")
    monkeypatch.setenv("SDKMAN_DIR", str(tmp_path))
    unix.run_sdkman(_dry())
    out = capsys.readouterr().out
    assert "sdk selfupdate" in out
    assert "sdk upgrade" in out
    assert "flush" not in out


def test_run_guix_pull_failure(tools, monkeypatch):
    tools("guix")

    def fake_run(argv, **kwargs):
        return subprocess.CompletedProcess(argv, 1, b"", b"")

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(SkipStep, match="Guix Pull Failed"):
        unix.run_guix(_dry())


def test_nix_self_upgrade_skipped_off_macos(tools, monkeypatch):
    tools("nix")
    monkeypatch.setattr(sys, "platform", "freebsd13")
    with pytest.raises(SkipStep, match="upgrade-nix"):
        unix.run_nix_self_upgrade(_dry())


def test_run_brew_formula_dry(tools, monkeypatch, capsys):
    tools("brew")
    monkeypatch.setattr(sys, "platform", "linux")
    unix.run_brew_formula(_dry(cleanup=True, brew_fetch_head=True), BrewVariant.PATH)
    out = capsys.readouterr().out
    assert "brew update" in out
    assert "brew upgrade --formula --fetch-HEAD" in out
    assert "brew cleanup" in out
    assert "autoremove" not in out


def test_run_brew_formula_default_macos_brew_skipped(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name, *a, **k: "/opt/homebrew/bin/brew")
    monkeypatch.setattr(sys, "platform", "darwin")
    with pytest.raises(SkipStep, match="Not a custom brew"):
        unix.run_brew_formula(_dry(), BrewVariant.PATH)


def test_run_nix_uses_nix_env_without_manifest(tools, monkeypatch, tmp_path, capsys):
    tools("nix", "nix-channel", "nix-env")
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(sys, "platform", "linux")
    unix.run_nix(_dry(nix_env_arguments="--prebuilt-only"))
    out = capsys.readouterr().out
    assert "/usr/bin/nix-channel --update" in out
    assert "/usr/bin/nix-env --upgrade --prebuilt-only" in out
    assert Path(tmp_path / ".nix-profile").exists() is False