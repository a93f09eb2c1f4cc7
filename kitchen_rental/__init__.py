"""Kitchen equipment rental API: booking lifecycle, conflict detection and payments."""

__version__ = "0.1.0"
