"""
Visual Explorer Configuration Module

Provides centralized configuration management.

Usage:
    from config import Defaults
    max_screens = Defaults.EXPLORE_MAX_SCREENS
"""

from .defaults import Defaults, AppDefaults, load_defaults_from_env

__all__ = ["Defaults", "AppDefaults", "load_defaults_from_env"]
