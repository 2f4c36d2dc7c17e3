"""Updaters available on Unix-like systems: shells, Homebrew, Nix and assorted tools."""

from __future__ import annotations

import logging
import os
import platform
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .distribution import Distribution, detect, load_os_release
from .terminal import print_separator
from .utils import (
    REQUIRE_SUDO,
    Command,
    Context,
    ProcessFailed,
    SkipStep,
    require,
    require_option,
    require_path,
)

logger = logging.getLogger("sysrefresh")

INTEL_BREW = "/usr/local/bin/brew"
ARM_BREW = "/opt/homebrew/bin/brew"
DEFAULT_NIX_PROFILE = Path("/nix/var/nix/profiles/per-user/default")


def _machine() -> str:
    return platform.machine().lower()


def _is_arm() -> bool:
    return _machine() in ("arm64", "aarch64")


def _is_x86_64() -> bool:
    return _machine() in ("x86_64", "amd64")


class BrewVariant(Enum):
    PATH = "path"
    MAC_INTEL = "mac-intel"
    MAC_ARM = "mac-arm"

    def binary_name(self) -> str:
        return {
            BrewVariant.PATH: "brew",
            BrewVariant.MAC_INTEL: INTEL_BREW,
            BrewVariant.MAC_ARM: ARM_BREW,
        }[self]

    def step_title(self) -> str:
        both_exist = Path(INTEL_BREW).exists() and Path(ARM_BREW).exists()
        if both_exist and self is BrewVariant.MAC_ARM:
            return "Brew (ARM)"
        if both_exist and self is BrewVariant.MAC_INTEL:
            return "Brew (Intel)"
        return "Brew"

    def _command(self, dry: bool) -> Command:
        if self is BrewVariant.MAC_INTEL and _is_arm():
            return Command("arch", dry=dry).arg("-x86_64").arg(self.binary_name())
        if self is BrewVariant.MAC_ARM and _is_x86_64():
            return Command("arch", dry=dry).arg("-arm64e").arg(self.binary_name())
        return Command(self.binary_name(), dry=dry)

    def execute(self, ctx: Context) -> Command:
        """A brew command, run through `arch` when the binary is for the other architecture."""
        return self._command(ctx.dry_run)


def _is_macos_custom(binary: Any) -> bool:
    return os.fspath(binary) not in (INTEL_BREW, ARM_BREW)


def _skip_default_macos_brew(variant: BrewVariant, binary: Path) -> None:
    if variant is BrewVariant.PATH and not _is_macos_custom(binary):
        raise SkipStep("Not a custom brew for macOS")


def _sudo(ctx: Context):
    return require_option(ctx.sudo, REQUIRE_SUDO)


def _execute_elevated(ctx: Context, command: Any, interactive: bool) -> Command:
    sudo = _sudo(ctx)
    if hasattr(sudo, "execute_elevated"):
        return sudo.execute_elevated(ctx, command, interactive)
    cmd = ctx.execute(sudo)
    if interactive:
        cmd.arg("-i")
    return cmd.arg(command)


def _home() -> Path:
    return Path.home()


def run_fisher(ctx: Context) -> None:
    fish = require("fish")

    try:
        Command(fish).args(["-c", "type -t fisher"]).output_checked_utf8()
    except (ProcessFailed, OSError, UnicodeDecodeError) as err:
        raise SkipStep("`fisher` is not defined in `fish`") from err

    try:
        output = Command(fish).args(["-c", 'echo "$__fish_config_dir/fish_plugins"']).output_checked_utf8()
        require_path(Path(output.stdout.strip()))
    except (ProcessFailed, OSError, UnicodeDecodeError, SkipStep) as err:
        raise SkipStep(f"`fish_plugins` path doesn't exist: {err}") from err

    try:
        Command(fish).args(["-c", "fish_update_completions"]).output_checked_utf8()
    except (ProcessFailed, OSError, UnicodeDecodeError) as err:
        raise SkipStep("`fish_update_completions` is not available") from err

    print_separator("Fisher")

    output = ctx.execute(fish).args(["-c", "fisher --version"]).output_checked_utf8()
    version = output.stdout if output is not None else ""
    logger.debug("Fisher version: %s", version)

    if version.startswith("fisher version 3."):
        ctx.execute(fish).args(["-c", "fisher"]).status_checked()
    else:
        ctx.execute(fish).args(["-c", "fisher update"]).status_checked()


def run_bashit(ctx: Context) -> None:
    require_path(_home() / ".bash_it")
    print_separator("Bash-it")
    branch = ctx.option("bashit_branch", "stable")
    ctx.execute("bash").args(["-lic", f"bash-it update {branch}"]).status_checked()


def run_oh_my_bash(ctx: Context) -> None:
    require("bash")
    oh_my_bash = os.environ.get("OSH", str(_home() / ".oh-my-bash"))
    require_path(oh_my_bash)

    print_separator("oh-my-bash")
    ctx.execute("bash").arg(f"{oh_my_bash}/tools/upgrade.sh").status_checked()


def run_oh_my_fish(ctx: Context) -> None:
    fish = require("fish")
    require_path(_home() / ".local/share/omf/pkg/omf/functions/omf.fish")
    print_separator("oh-my-fish")
    ctx.execute(fish).args(["-c", "omf update"]).status_checked()


def run_pkgin(ctx: Context) -> None:
    pkgin = require("pkgin")
    sudo = _sudo(ctx)

    print_separator("Pkgin")
    for subcommand in ("update", "upgrade"):
        command = ctx.execute(sudo).arg(pkgin).arg(subcommand)
        if ctx.yes("pkgin"):
            command.arg("-y")
        command.status_checked()


def run_fish_plug(ctx: Context) -> None:
    fish = require("fish")
    require_path(_home() / ".local/share/fish/plug/kidonng/fish-plug/functions/plug.fish")
    print_separator("fish-plug")
    ctx.execute(fish).args(["-c", "plug update"]).status_checked()


def run_fundle(ctx: Context) -> None:
    """Upgrade fundle, a plugin manager for fish, and its plugins."""
    fish = require("fish")
    require_path(_home() / ".config/fish/fundle")
    print_separator("fundle")
    ctx.execute(fish).args(["-c", "fundle self-update && fundle update"]).status_checked()


def upgrade_gnome_extensions(ctx: Context) -> None:
    gdbus = require("gdbus")
    desktop = os.environ.get("XDG_CURRENT_DESKTOP")
    require_option(
        desktop if desktop is not None and "GNOME" in desktop else None,
        "Desktop doest not appear to be gnome",
    )
    output = Command("gdbus").args(
        [
            "call",
            "--session",
            "--dest",
            "org.freedesktop.DBus",
            "--object-path",
            "/org/freedesktop/DBus",
            "--method",
            "org.freedesktop.DBus.ListActivatableNames",
        ]
    ).output_checked_utf8()

    logger.debug("Checking for gnome extensions: %s", output)
    if "org.gnome.Shell.Extensions" not in output.stdout:
        raise SkipStep("Gnome shell extensions are unregistered in DBus")

    print_separator("Gnome Shell extensions")
    ctx.execute(gdbus).args(
        [
            "call",
            "--session",
            "--dest",
            "org.gnome.Shell.Extensions",
            "--object-path",
            "/org/gnome/Shell/Extensions",
            "--method",
            "org.gnome.Shell.Extensions.CheckForUpdates",
        ]
    ).status_checked()


def run_brew_formula(ctx: Context, variant: BrewVariant) -> None:
    binary = require(variant.binary_name())
    if sys.platform == "darwin":
        _skip_default_macos_brew(variant, binary)

    print_separator(variant.step_title())
    variant.execute(ctx).arg("update").status_checked()

    command = variant.execute(ctx).args(["upgrade", "--formula"])
    if ctx.option("brew_fetch_head", False):
        command.arg("--fetch-HEAD")
    command.status_checked()

    if ctx.option("cleanup", False):
        variant.execute(ctx).arg("cleanup").status_checked()
    if ctx.option("brew_autoremove", False):
        variant.execute(ctx).arg("autoremove").status_checked()


def run_brew_cask(ctx: Context, variant: BrewVariant) -> None:
    binary = require(variant.binary_name())
    _skip_default_macos_brew(variant, binary)
    print_separator(f"{variant.step_title()} - Cask")

    output = variant._command(dry=False).args(["--repository", "buo/cask-upgrade"]).output_checked_utf8()
    cask_upgrade_exists = Path(output.stdout.strip()).exists()

    if cask_upgrade_exists:
        brew_args = ["cu", "-y"]
        if ctx.option("brew_cask_greedy", False):
            brew_args.append("-a")
    else:
        brew_args = ["upgrade", "--cask"]
        if ctx.option("brew_cask_greedy", False):
            brew_args.append("--greedy")
        if ctx.option("brew_greedy_latest", False):
            brew_args.append("--greedy-latest")

    variant.execute(ctx).args(brew_args).status_checked()

    if ctx.option("cleanup", False):
        variant.execute(ctx).arg("cleanup").status_checked()


def run_guix(ctx: Context) -> None:
    guix = require("guix")

    try:
        output = Command(guix).arg("pull").output_checked_utf8()
        logger.debug("guix pull output: %s", output)
        should_upgrade = True
    except (ProcessFailed, OSError, UnicodeDecodeError) as err:
        logger.debug("guix pull failed: %s", err)
        should_upgrade = False
    logger.debug("Can Upgrade Guix: %s", should_upgrade)

    print_separator("Guix")
    if not should_upgrade:
        raise SkipStep("Guix Pull Failed, Skipping")
    ctx.execute(guix).args(["package", "-u"]).status_checked()


def nix_args() -> list[str]:
    return ["--extra-experimental-features", "nix-command"]


def run_nix(ctx: Context) -> None:
    nix = require("nix")
    nix_channel = require("nix-channel")
    nix_env = require("nix-env")
    try:
        profile_path = _home() / ".nix-profile"
    except RuntimeError:
        profile_path = DEFAULT_NIX_PROFILE
    logger.debug("nix profile: %s", profile_path)
    manifest_json_path = profile_path / "manifest.json"

    print_separator("Nix")

    if sys.platform == "darwin":
        try:
            require("darwin-rebuild")
        except SkipStep:
            pass
        else:
            raise SkipStep("Nix-darwin on macOS must be upgraded via darwin-rebuild switch")

    ctx.execute(nix_channel).arg("--update").status_checked()

    if manifest_json_path.exists():
        (
            ctx.execute(nix)
            .args(nix_args())
            .args(["profile", "upgrade", ".*", "--verbose"])
            .status_checked()
        )
    else:
        command = ctx.execute(nix_env).arg("--upgrade")
        extra = ctx.option("nix_env_arguments")
        if extra is not None:
            command.args(extra.split())
        command.status_checked()


def nix_profile_dir(nix: Any) -> Optional[Path]:
    """The Nix profile holding `nix`, or None when `nix upgrade-nix` cannot find one."""
    nix_path = Path(nix)
    bin_dir = nix_path.parent
    if bin_dir.name != "bin":
        logger.debug("Nix is not installed in a `bin` directory: %s", bin_dir)
        return None

    profile_dir = bin_dir.parent
    logger.debug("Found Nix in %s", profile_dir)

    while profile_dir.is_symlink():
        try:
            target = os.readlink(profile_dir)
        except OSError as err:
            raise RuntimeError(f"Failed to read symlink {profile_dir}") from err
        profile_dir = profile_dir.parent / target
        try:
            resolved = profile_dir.resolve(strict=True)
        except OSError as err:
            raise RuntimeError(f"Failed to canonicalize {profile_dir}") from err
        if "profiles" in resolved.parts:
            break

    logger.debug("Found Nix profile %s", profile_dir)

    try:
        user_env = profile_dir.resolve(strict=True)
    except OSError as err:
        raise RuntimeError(f"Failed to canonicalize {profile_dir}") from err

    return profile_dir if user_env.name.endswith("user-environment") else None


def run_nix_self_upgrade(ctx: Context) -> None:
    nix = require("nix")

    should_self_upgrade = sys.platform == "darwin"
    if sys.platform.startswith("linux"):
        try:
            if detect() is Distribution.NIXOS:
                should_self_upgrade = False
        except Exception as err:  # detection failure leaves the decision unchanged
            logger.debug("Distribution detection failed: %s", err)

    if not should_self_upgrade:
        raise SkipStep("`nix upgrade-nix` can only be used on macOS or non-NixOS Linux")

    if nix_profile_dir(nix) is None:
        raise SkipStep("`nix upgrade-nix` cannot be run when Nix is installed in a profile")

    print_separator("Nix (self-upgrade)")

    multi_user = os.stat(nix).st_uid == 0
    logger.debug("Multi user nix: %s", multi_user)

    command = _execute_elevated(ctx, nix, True) if multi_user else ctx.execute(nix)
    command.args(nix_args()).arg("upgrade-nix").status_checked()


def run_yadm(ctx: Context) -> None:
    yadm = require("yadm")
    print_separator("yadm")
    ctx.execute(yadm).arg("pull").status_checked()


def run_asdf(ctx: Context) -> None:
    asdf = require("asdf")
    print_separator("asdf")
    ctx.execute(asdf).arg("update").status_checked_with_codes([42])
    ctx.execute(asdf).args(["plugin", "update", "--all"]).status_checked()


def run_home_manager(ctx: Context) -> None:
    home_manager = require("home-manager")
    print_separator("home-manager")
    command = ctx.execute(home_manager).arg("switch")
    extra = ctx.option("home_manager")
    if extra is not None:
        command.args(extra)
    command.status_checked()


def run_tldr(ctx: Context) -> None:
    tldr = require("tldr")
    print_separator("TLDR")
    ctx.execute(tldr).arg("--update").status_checked()


def run_pearl(ctx: Context) -> None:
    pearl = require("pearl")
    print_separator("pearl")
    ctx.execute(pearl).arg("update").status_checked()


def run_pyenv(ctx: Context) -> None:
    pyenv = require("pyenv")
    print_separator("pyenv")

    root = os.environ.get("PYENV_ROOT")
    pyenv_dir = Path(root) if root is not None else _home() / ".pyenv"

    if not pyenv_dir.exists():
        raise SkipStep("Pyenv is installed, but $PYENV_ROOT is not set correctly")
    if not (pyenv_dir / ".git").exists():
        raise SkipStep("pyenv is not a git repository")

    ctx.execute(pyenv).arg("update").status_checked()


def _sdkman_dir() -> Path:
    root = os.environ.get("SDKMAN_DIR")
    return Path(root) if root is not None else _home() / ".sdkman"


def run_sdkman(ctx: Context) -> None:
    bash = require("bash")

    init_path = str(require_path(_sdkman_dir() / "bin" / "sdkman-init.sh"))

    print_separator("SDKMAN!")

    config_path = require_path(_sdkman_dir() / "etc" / "config")
    config = load_os_release(Path(config_path).read_text(encoding="utf-8"))
    selfupdate_enabled = config.get("sdkman_selfupdate_feature", "false")

    def sdk(action: str) -> None:
        ctx.execute(bash).args(["-c", f"source {init_path} && sdk {action}"]).status_checked()

    if selfupdate_enabled == "true":
        sdk("selfupdate")
    sdk("update")
    sdk("upgrade")

    if ctx.option("cleanup", False):
        sdk("flush archives")
        sdk("flush temp")


def run_bun(ctx: Context) -> None:
    bun = require("bun")
    print_separator("Bun")
    ctx.execute(bun).arg("upgrade").status_checked()


def run_bun_packages(ctx: Context) -> None:
    bun = require("bun")
    print_separator("Bun Packages")

    root = os.environ.get("BUN_INSTALL")
    package_json = (Path(root) if root is not None else _home() / ".bun") / "install/global/package.json"

    if not package_json.exists():
        print("No global packages installed")
        return

    ctx.execute(bun).args(["-g", "update"]).status_checked()


def run_rcm(ctx: Context) -> None:
    """Update dotfiles with rcm."""
    rcup = require("rcup")
    print_separator("rcm")
    ctx.execute(rcup).arg("-v").status_checked()


def run_maza(ctx: Context) -> None:
    maza = require("maza")
    print_separator("maza")
    ctx.execute(maza).arg("update").status_checked()


def reboot() -> None:
    print("Rebooting...", end="", flush=True)
    Command("sudo").arg("reboot").status_checked()