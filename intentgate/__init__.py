"""intentgate: intent-scoped change governance for coding agents."""

__version__ = "0.1.0"
