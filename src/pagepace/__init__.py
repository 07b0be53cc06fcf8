"""Reading progress tracking with adaptive pace recommendations."""

__version__ = "0.1.0"
