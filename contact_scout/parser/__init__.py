"""HTML normalization and readability scoring."""
