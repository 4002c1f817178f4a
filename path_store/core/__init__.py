"""Core application primitives: exceptions and settings."""
