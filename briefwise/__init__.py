"""AI-assisted newsletter generation with citation verification."""

__version__ = "0.1.0"
