"""Context-aware review of changed source lines."""

__version__ = "0.1.0"
