"""
UTXO Indexer - Version Management
===================================
Versione del package e build info.
"""

from typing import NamedTuple
import platform


# ============================================================================
# VERSION INFO
# ============================================================================

class VersionInfo(NamedTuple):
    """major.minor.patch[-prerelease][+build]"""
    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = ""

    def __str__(self) -> str:
        text = ".".join(str(part) for part in (self.major, self.minor, self.patch))
        if self.prerelease:
            text = f"{text}-{self.prerelease}"
        if self.build:
            text = f"{text}+{self.build}"
        return text


VERSION = VersionInfo(major=1, minor=0, patch=0)


def get_version_string() -> str:
    """
    Example:
        >>> get_version_string()
        '1.0.0'
    """
    return str(VERSION)


def get_build_info() -> dict:
    """Version + runtime info (per `utxo-indexer version`)"""
    return {
        "version": get_version_string(),
        "python": platform.python_version(),
        "platform": platform.system().lower() or "unknown",
    }


__version__ = get_version_string()

__all__ = [
    "__version__",
    "VERSION",
    "VersionInfo",
    "get_version_string",
    "get_build_info",
]
