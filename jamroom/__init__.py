"""JAMROOM — loop mixing and mixdown engine for collaborative jam sessions."""

__version__ = "0.1.0"
