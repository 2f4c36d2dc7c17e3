"""Linux distribution detection from os-release data."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Union

OS_RELEASE_PATH = Path("/etc/os-release")
BEDROCK_PATH = Path("/bedrock")


class UnknownLinuxDistribution(Exception):
    """Raised when os-release data matches no supported distribution."""

    def __init__(self, message: str = "Unknown Linux Distribution"):
        super().__init__(message)


class EmptyOSReleaseFile(Exception):
    """Raised when the os-release file is missing or has no entries."""

    def __init__(self, message: str = 'File "/etc/os-release" does not exist or is empty'):
        super().__init__(message)


class Distribution(Enum):
    ALPINE = "alpine"
    WOLFI = "wolfi"
    ARCH = "arch"
    BEDROCK = "bedrock"
    CENTOS = "centos"
    CLEAR_LINUX = "clearlinux"
    FEDORA = "fedora"
    FEDORA_IMMUTABLE = "fedora-immutable"
    DEBIAN = "debian"
    GENTOO = "gentoo"
    OPEN_MANDRIVA = "openmandriva"
    OPENSUSE_TUMBLEWEED = "opensuse-tumbleweed"
    PCLINUXOS = "pclinuxos"
    SUSE = "suse"
    SUSE_MICRO = "suse-micro"
    VANILLA = "vanilla"
    VOID = "void"
    SOLUS = "solus"
    EXHERBO = "exherbo"
    NIXOS = "nixos"
    KDE_NEON = "kde-neon"
    NOBARA = "nobara"

    def redhat_based(self) -> bool:
        return self in (Distribution.CENTOS, Distribution.FEDORA)


_BY_ID = {
    "alpine": Distribution.ALPINE,
    "wolfi": Distribution.WOLFI,
    "centos": Distribution.CENTOS,
    "rhel": Distribution.CENTOS,
    "ol": Distribution.CENTOS,
    "clear-linux-os": Distribution.CLEAR_LINUX,
    "nobara": Distribution.NOBARA,
    "void": Distribution.VOID,
    "debian": Distribution.DEBIAN,
    "pureos": Distribution.DEBIAN,
    "Deepin": Distribution.DEBIAN,
    "arch": Distribution.ARCH,
    "manjaro-arm": Distribution.ARCH,
    "garuda": Distribution.ARCH,
    "artix": Distribution.ARCH,
    "solus": Distribution.SOLUS,
    "gentoo": Distribution.GENTOO,
    "exherbo": Distribution.EXHERBO,
    "nixos": Distribution.NIXOS,
    "opensuse-microos": Distribution.SUSE_MICRO,
    "neon": Distribution.KDE_NEON,
    "openmandriva": Distribution.OPEN_MANDRIVA,
    "pclinuxos": Distribution.PCLINUXOS,
}

_IMMUTABLE_VARIANTS = ("Silverblue", "Kinoite", "Sericea", "Onyx")

_ESCAPES = {'\\"': '"', "\\'": "'", "\\\\": "\\", "\\$": "$", "\\`": "`"}


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    for escaped, plain in _ESCAPES.items():
        value = value.replace(escaped, plain)
    return value


def load_os_release(text: str) -> dict[str, str]:
    """Parse os-release text into its top-level KEY=VALUE entries."""
    fields: dict[str, str] = {}
    in_general = True
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#;":
            continue
        if line.startswith("[") and line.endswith("]"):
            in_general = False
            continue
        if not in_general or "=" not in line:
            continue
        key, value = line.split("=", 1)
        fields[key.strip()] = _unquote(value.strip())
    return fields


def parse_os_release(text: Union[str, Mapping[str, str]]) -> Distribution:
    """Identify the distribution from os-release text or already parsed fields."""
    fields = load_os_release(text) if isinstance(text, str) else dict(text)
    dist_id: Optional[str] = fields.get("ID")
    name: Optional[str] = fields.get("NAME")
    variant = fields["VARIANT"].split() if "VARIANT" in fields else None
    id_like = fields["ID_LIKE"].split() if "ID_LIKE" in fields else None

    if dist_id == "fedora":
        if variant is not None and any(v in variant for v in _IMMUTABLE_VARIANTS):
            return Distribution.FEDORA_IMMUTABLE
        return Distribution.FEDORA

    if dist_id in _BY_ID:
        return _BY_ID[dist_id]

    if name is not None and "Vanilla" in name:
        return Distribution.VANILLA

    if id_like is not None:
        if "debian" in id_like or "ubuntu" in id_like:
            return Distribution.DEBIAN
        if "centos" in id_like:
            return Distribution.CENTOS
        if "suse" in id_like:
            if "tumbleweed" in (dist_id or ""):
                return Distribution.OPENSUSE_TUMBLEWEED
            return Distribution.SUSE
        if "arch" in id_like or "archlinux" in id_like:
            return Distribution.ARCH
        if "alpine" in id_like:
            return Distribution.ALPINE
        if "fedora" in id_like:
            return Distribution.FEDORA

    raise UnknownLinuxDistribution()


def detect() -> Distribution:
    """Detect the running distribution."""
    if BEDROCK_PATH.exists():
        return Distribution.BEDROCK
    if OS_RELEASE_PATH.exists():
        fields = load_os_release(OS_RELEASE_PATH.read_text(encoding="utf-8"))
        if not fields:
            raise EmptyOSReleaseFile()
        return parse_os_release(fields)
    raise EmptyOSReleaseFile()