"""Install an operating-system image onto local storage."""

from .__version__ import __version__


__all__ = ["__version__"]
