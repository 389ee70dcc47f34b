"""kvload: rate-limited read/update load generator for key-value stores."""

__version__ = "0.1.0"
