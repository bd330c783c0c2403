"""Utility helpers for keyman."""
