"""
Storage Layer.

This package handles loading and creating the configuration file.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
