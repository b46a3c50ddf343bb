"""AI-assisted search proxy for podcast research."""

__version__ = "1.0.0"
