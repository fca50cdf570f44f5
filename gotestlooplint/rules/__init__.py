"""Rules for gotestlooplint."""
