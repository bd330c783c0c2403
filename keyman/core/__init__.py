"""Core runtime support (logging)."""
