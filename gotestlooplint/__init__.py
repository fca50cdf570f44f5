"""gotestlooplint - loop variable capture checks for Go tests."""

__version__ = "0.3.0"
