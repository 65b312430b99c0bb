"""Interactive viewer and export tooling for class-archive decompilation."""

from importlib.metadata import version, PackageNotFoundError

try:  # pragma: no cover - metadata only available when installed as a package
    __version__ = version("decomp-viewer")
except PackageNotFoundError:  # pragma: no cover - fallback for in-tree usage
    __version__ = "0.1.0"

__all__ = ["__version__"]
