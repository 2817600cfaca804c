"""Debian Doctor — system diagnostics and guided remediation for Debian hosts"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("debdoctor")
except PackageNotFoundError:
    __version__ = "dev"

__author__ = "Debian Doctor"
