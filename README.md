# sysrefresh

`sysrefresh` is a library of upgrade steps. Each step looks for a tool on
the machine (a package manager, a shell plugin manager, a version manager,
a remote host or a Vagrant box) and runs the commands that bring it up to
date. A step that does not apply raises `sysrefresh.utils.SkipStep`; a
command that exits with an unexpected status raises
`sysrefresh.utils.ProcessFailed`.

The package has no dependencies outside the standard library.

## Modules

- `sysrefresh.utils` – `Context`, `Command`, `SkipStep`, `ProcessFailed`,
  binary lookup (`which`, `require`), path checks (`require_path`,
  `if_exists`, `is_descendant_of`), `require_option`, `editor`, `hostname`,
  `check_is_python_2_or_shim`, small merge helpers for optional values and
  `install_tracing` / `update_tracing` for the `sysrefresh` logger (the level
  falls back to `$SYSREFRESH_LOG`, then `warning`).
- `sysrefresh.terminal` – separator lines, step results (`StepResult`),
  warnings and errors, yes/no prompts, the retry prompt
  (`should_retry`: yes, no, drop to a shell, or quit) and desktop
  notifications through `notify-send` when it is installed. A prefix from
  `$TOPGRADE_PREFIX` is shown in front of separators.
- `sysrefresh.distribution` – reads `/etc/os-release` (`detect`,
  `parse_os_release`, `load_os_release`) and returns a `Distribution`;
  raises `UnknownLinuxDistribution` or `EmptyOSReleaseFile`.
- `sysrefresh.other_os` – FreeBSD, OpenBSD and DragonFly BSD updates and
  package audits, and Termux packages (`nala` or `pkg`).
- `sysrefresh.macos` – `softwareupdate`, MacPorts, the App Store (`mas`),
  Sparkle-enabled applications and Xcode releases through `xcodes`.
- `sysrefresh.unix` – Homebrew formulae and casks (`BrewVariant`), Nix and
  `nix upgrade-nix`, Guix, asdf, pyenv, SDKMAN!, Bun, home-manager, yadm,
  tldr, pearl, rcm, maza, pkgin, GNOME Shell extensions, fisher,
  fish-plug, fundle, oh-my-fish, oh-my-bash, Bash-it, and `reboot`.
- `sysrefresh.zsh` – zr, antidote, antibody, antigen, zgenom, zplug, zinit,
  zi, zim and oh-my-zsh.
- `sysrefresh.tmux` – tmux plugin updates through tpm (`run_tpm`), the
  `Tmux` helper, `run_in_tmux` and `run_command`.
- `sysrefresh.toolbx` – runs the updater inside each Toolbx container.
- `sysrefresh.ssh` – runs the updater on a remote host (`ssh_step`), in the
  terminal, in a tmux window, or in a new Windows Terminal tab.
- `sysrefresh.vagrant` – lists boxes in configured directories, runs the
  updater inside each (powering stopped boxes on for the duration with
  `TemporaryPowerOn`) and updates outdated base boxes.

## The context

Every step takes a `Context`:

- `dry_run` – commands that change the system are printed as
  `Dry running: ...` instead of being run.
- `assume_yes` – `True`, or a set of step names such as `"system"`,
  `"xcodes"`, `"toolbx"`, `"pkgin"` or `"vagrant"`; `Context.yes(step)`
  answers for one step.
- `sudo` – the program used to run commands as root (for example
  `"/usr/bin/sudo"`). Steps that need it raise `SkipStep` when it is `None`.
- `options` – a dict read with `Context.option(name, default)`. Keys in use
  include `cleanup`, `bashit_branch`, `brew_fetch_head`, `brew_autoremove`,
  `brew_cask_greedy`, `brew_greedy_latest`, `nix_env_arguments`,
  `home_manager`, `tmux_arguments`, `ssh_arguments`, `remote_topgrade_path`,
  `run_in_tmux`, `open_remotes_in_new_terminal`, `vagrant_directories`,
  `vagrant_power_on` and `vagrant_always_suspend`.
- `tmux_session` – the session that `sysrefresh.tmux.run_command` creates
  on first use and reuses afterwards.

## Usage

```python
from sysrefresh.utils import Context, ProcessFailed, SkipStep
from sysrefresh.unix import run_asdf
from sysrefresh.terminal import StepResult, print_result

ctx = Context(assume_yes={"system"}, options={"cleanup": True})
try:
    run_asdf(ctx)
    print_result("asdf", StepResult.success())
except SkipStep as reason:
    print_result("asdf", StepResult.skipped(str(reason)))
except ProcessFailed:
    print_result("asdf", StepResult.failure())
```

Detecting the Linux distribution:

```python
from sysrefresh.distribution import detect

distribution = detect()
print(distribution.value, distribution.redhat_based())
```

## What it does not do

- There is no command-line program and no configuration file; a caller
  builds the `Context` and decides which steps to run and in what order.
- The Linux distribution is detected, but there is no step here that
  upgrades a distribution's own packages (apt, dnf, zypper, pacman and the
  like), and none for flatpak, snap, firmware or similar Linux tools.
- The program used for root access is not detected; pass it in
  `Context.sudo`.