"""Security news duplicate detection and update resolution."""

__version__ = "0.1.0"
