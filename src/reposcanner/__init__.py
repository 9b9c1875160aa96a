"""reposcanner - keeps package repository metadata consistent with its packages."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("reposcanner")
except PackageNotFoundError:
    __version__ = "0.0.0"
