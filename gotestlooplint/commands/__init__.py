"""Command-line commands for gotestlooplint."""
