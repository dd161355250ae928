"""NoteFinder: semantic search over Markdown notes."""
