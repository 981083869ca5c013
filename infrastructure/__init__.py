"""Configuration, persistence and logging."""
