"""Cross-cutting utilities shared by MyHome services."""
