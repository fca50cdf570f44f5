"""Tree-sitter based extractors for Go source."""
