"""Detect the boot device of the running machine for a shared NixOS config."""

from .__version__ import __version__

__all__ = ["__version__"]
