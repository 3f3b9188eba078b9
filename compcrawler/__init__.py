"""Team-composition crawler: strategy-guide markup → normalized board records."""

__version__ = "0.1.0"
