"""stepbind - BDD step definition indexing and step-to-binding resolution."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stepbind")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"
