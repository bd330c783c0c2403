"""keyman - lifecycle management for a single API key."""

from keyman._version import __version__


__all__ = ["__version__"]
