"""Shared helpers: error taxonomy and version lookup."""
