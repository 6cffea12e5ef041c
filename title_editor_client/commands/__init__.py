"""Command groups of the title-editor CLI."""

from .config import config

__all__ = ["config"]
