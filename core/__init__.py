"""Domain rules and security primitives."""
