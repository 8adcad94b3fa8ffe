"""
Utility modules for the seed crawler.
"""

from .config import Config, ConfigManager, load_config, get_config, default_config

__all__ = ['Config', 'ConfigManager', 'load_config', 'get_config', 'default_config']
