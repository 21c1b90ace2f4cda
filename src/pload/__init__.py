"""CS5480 power reading toolkit for Ember test boards."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover - fallback when package metadata missing
    __version__ = version("pload")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

# console output belongs to the CLI; records only reach handlers it attaches
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["__version__"]
