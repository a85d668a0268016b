"""savekeep: numbered snapshot history for a single tracked file."""

__version__ = "0.1.0"
