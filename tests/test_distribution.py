import pytest

from sysrefresh import distribution
from sysrefresh.distribution import (
    Distribution,
    EmptyOSReleaseFile,
    UnknownLinuxDistribution,
    detect,
    load_os_release,
    parse_os_release,
)

OS_RELEASES = {
    "wolfi": 'ID=wolfi\nNAME="Wolfi"\nPRETTY_NAME="Wolfi"\n',
    "arch": 'NAME="Arch Linux"\nPRETTY_NAME="Arch Linux"\nID=arch\nBUILD_ID=rolling\n',
    "arch32": 'NAME="Arch Linux 32"\nID=arch32\nID_LIKE=arch\n',
    "centos": 'NAME="CentOS Linux"\nVERSION="7 (Core)"\nID="centos"\nID_LIKE="rhel fedora"\n',
    "rhel": 'NAME="Red Hat Enterprise Linux"\nID="rhel"\nID_LIKE="fedora"\n',
    "clearlinux": "NAME=\"Clear Linux OS\"\nID=clear-linux-os\nID_LIKE=clear-linux-os\n",
    "debian": 'PRETTY_NAME="Debian GNU/Linux 10 (buster)"\nNAME="Debian GNU/Linux"\nID=debian\n',
    "ubuntu": 'NAME="Ubuntu"\nID=ubuntu\nID_LIKE=debian\n',
    "mint": 'NAME="Linux Mint"\nID=linuxmint\nID_LIKE=ubuntu\n',
    "opensuse": 'NAME="openSUSE Leap"\nID="opensuse-leap"\nID_LIKE="suse opensuse"\n',
    "oracle": 'NAME="Oracle Linux Server"\nID="ol"\nID_LIKE="fedora"\n',
    "fedora": 'NAME=Fedora\nVERSION="29 (Workstation Edition)"\nID=fedora\nVARIANT="Workstation Edition"\n',
    "fedorasilverblue": 'NAME="Fedora Linux"\nID=fedora\nVARIANT="Silverblue"\nVARIANT_ID=silverblue\n',
    "fedorakinoite": 'NAME="Fedora Linux"\nID=fedora\nVARIANT="Kinoite"\n',
    "fedoraonyx": 'NAME="Fedora Linux"\nID=fedora\nVARIANT="Onyx"\n',
    "fedorasericea": 'NAME="Fedora Linux"\nID=fedora\nVARIANT="Sericea"\n',
    "manjaro": 'NAME="Manjaro Linux"\nID=manjaro\nID_LIKE=arch\n',
    "manjaro-arm": 'NAME="Manjaro ARM"\nID="manjaro-arm"\nID_LIKE="manjaro arch"\n',
    "gentoo": 'NAME=Gentoo\nID=gentoo\n',
    "exherbo": 'NAME="Exherbo"\nID="exherbo"\n',
    "amazon_linux": 'NAME="Amazon Linux"\nID="amzn"\nID_LIKE="centos rhel fedora"\n',
    "nixos": 'NAME=NixOS\nID=nixos\n',
    "fedoraremixforwsl": 'NAME="Fedora Remix for WSL"\nID=fedoraremixforwsl\nID_LIKE=fedora\n',
    "pengwinonwsl": 'NAME="Pengwin"\nID=pengwin\nID_LIKE=debian\n',
    "artix": 'NAME="Artix Linux"\nID=artix\n',
    "garuda": 'NAME="Garuda Linux"\nID=garuda\nID_LIKE=arch\n',
    "pureos": 'NAME="PureOS"\nID=pureos\nID_LIKE=debian\n',
    "deepin": 'NAME="Deepin"\nID=Deepin\n',
    "vanilla": 'NAME="VanillaOS"\nID=vanilla\nID_LIKE=ubuntu\n',
    "solus": 'NAME="Solus"\nID="solus"\n',
    "nobara": 'NAME="Nobara Linux"\nID=nobara\nID_LIKE="rhel centos fedora"\n',
}

EXPECTED = [
    ("wolfi", Distribution.WOLFI),
    ("arch", Distribution.ARCH),
    ("arch32", Distribution.ARCH),
    ("centos", Distribution.CENTOS),
    ("rhel", Distribution.CENTOS),
    ("clearlinux", Distribution.CLEAR_LINUX),
    ("debian", Distribution.DEBIAN),
    ("ubuntu", Distribution.DEBIAN),
    ("mint", Distribution.DEBIAN),
    ("opensuse", Distribution.SUSE),
    ("oracle", Distribution.CENTOS),
    ("fedora", Distribution.FEDORA),
    ("fedorasilverblue", Distribution.FEDORA_IMMUTABLE),
    ("fedorakinoite", Distribution.FEDORA_IMMUTABLE),
    ("fedoraonyx", Distribution.FEDORA_IMMUTABLE),
    ("fedorasericea", Distribution.FEDORA_IMMUTABLE),
    ("manjaro", Distribution.ARCH),
    ("manjaro-arm", Distribution.ARCH),
    ("gentoo", Distribution.GENTOO),
    ("exherbo", Distribution.EXHERBO),
    ("amazon_linux", Distribution.CENTOS),
    ("nixos", Distribution.NIXOS),
    ("fedoraremixforwsl", Distribution.FEDORA),
    ("pengwinonwsl", Distribution.DEBIAN),
    ("artix", Distribution.ARCH),
    ("garuda", Distribution.ARCH),
    ("pureos", Distribution.DEBIAN),
    ("deepin", Distribution.DEBIAN),
    ("vanilla", Distribution.VANILLA),
    ("solus", Distribution.SOLUS),
    ("nobara", Distribution.NOBARA),
]


@pytest.mark.parametrize("name, expected", EXPECTED)
def test_parse_os_release(name, expected):
    assert parse_os_release(OS_RELEASES[name]) is expected


def test_tumbleweed():
    text = 'NAME="openSUSE Tumbleweed"\nID="opensuse-tumbleweed"\nID_LIKE="opensuse suse"\n'
    assert parse_os_release(text) is Distribution.OPENSUSE_TUMBLEWEED


def test_parse_accepts_mapping():
    assert parse_os_release({"ID": "void"}) is Distribution.VOID


def test_unknown_distribution():
    with pytest.raises(UnknownLinuxDistribution):
        parse_os_release('NAME="Something"\nID=something\n')


def test_load_os_release_strips_quotes_and_comments():
    fields = load_os_release('# comment\n\nNAME="Arch Linux"\nID=arch\nVARIANT=\'Silverblue\'\n')
    assert fields == {"NAME": "Arch Linux", "ID": "arch", "VARIANT": "Silverblue"}


def test_redhat_based():
    assert Distribution.CENTOS.redhat_based()
    assert Distribution.FEDORA.redhat_based()
    assert not Distribution.DEBIAN.redhat_based()
    assert not Distribution.FEDORA_IMMUTABLE.redhat_based()


def test_detect_bedrock(tmp_path, monkeypatch):
    bedrock = tmp_path / "bedrock"
    bedrock.mkdir()
    monkeypatch.setattr(distribution, "BEDROCK_PATH", bedrock)
    assert detect() is Distribution.BEDROCK


def test_detect_from_file(tmp_path, monkeypatch):
    release = tmp_path / "os-release"
    release.write_text(OS_RELEASES["gentoo"])
    monkeypatch.setattr(distribution, "BEDROCK_PATH", tmp_path / "missing")
    monkeypatch.setattr(distribution, "OS_RELEASE_PATH", release)
    assert detect() is Distribution.GENTOO


def test_detect_empty_file(tmp_path, monkeypatch):
    release = tmp_path / "os-release"
    release.write_text("# only a comment\n")
    monkeypatch.setattr(distribution, "BEDROCK_PATH", tmp_path / "missing")
    monkeypatch.setattr(distribution, "OS_RELEASE_PATH", release)
    with pytest.raises(EmptyOSReleaseFile):
        detect()


def test_detect_missing_file(tmp_path, monkeypatch):
    monkeypatch.setattr(distribution, "BEDROCK_PATH", tmp_path / "missing")
    monkeypatch.setattr(distribution, "OS_RELEASE_PATH", tmp_path / "nothing")
    with pytest.raises(EmptyOSReleaseFile):
        detect()