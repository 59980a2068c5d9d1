"""Core utilities shared across the knowledge gateway."""
