"""Core utilities: errors and logging."""
