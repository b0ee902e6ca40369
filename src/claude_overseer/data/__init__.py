"""Bundled data files (pricing table)."""
