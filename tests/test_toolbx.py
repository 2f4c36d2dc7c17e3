import os
import shlex

import pytest

from sysrefresh import toolbx
from sysrefresh.utils import Context, SkipStep

LISTING = (
    "CONTAINER ID  CONTAINER NAME     CREATED      STATUS   IMAGE NAME\n"
    "abc123def456  fedora-toolbox-38  2 days ago   running  registry/fedora-toolbox:38\n"
    "\n"
    "fed654cba321  devbox             3 weeks ago  exited   registry/devbox:1\n"
)


@pytest.fixture
def bin_dir(tmp_path, monkeypatch):
    directory = tmp_path / "bin"
    directory.mkdir()
    monkeypatch.setenv("PATH", str(directory))
    return directory


def make_toolbox(directory):
    listing = directory.parent / "listing.txt"
    listing.write_text(LISTING)
    path = directory / "toolbox"
    path.write_text(f"#!/bin/sh\nwhile read -r line; do echo \"$line\"; done < '{listing}'\n")
    path.chmod(0o755)
    return path


def test_parse_toolboxes():
    assert toolbx.parse_toolboxes(LISTING) == ["fedora-toolbox-38", "devbox"]


def test_parse_toolboxes_header_only():
    assert toolbx.parse_toolboxes("CONTAINER ID  CONTAINER NAME\n") == []


def test_list_toolboxes(bin_dir):
    path = make_toolbox(bin_dir)
    assert toolbx.list_toolboxes(path) == ["fedora-toolbox-38", "devbox"]


def test_run_toolbx_dry(bin_dir, capsys):
    make_toolbox(bin_dir)
    toolbx.run_toolbx(Context(dry_run=True, assume_yes={"toolbx"}))
    lines = [
        shlex.split(line[len("Dry running: "):])
        for line in capsys.readouterr().out.splitlines()
        if line.startswith("Dry running: ")
    ]
    assert len(lines) == 2
    first = lines[0]
    assert first[1:4] == ["run", "-c", "fedora-toolbox-38"]
    assert first[5] == "TOPGRADE_PREFIX='Toolbx fedora-toolbox-38'"
    assert first[6].startswith("/run/host" + os.sep)
    assert first[-1] == "--yes"
    assert first[7:10] == ["--only", "system", "--no-self-update"]


def test_run_toolbx_missing(bin_dir):
    with pytest.raises(SkipStep):
        toolbx.run_toolbx(Context(dry_run=True))