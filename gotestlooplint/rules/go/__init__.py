"""Go-specific rules."""
