"""
Utility modules for the mirroring crawler.
"""

from .config import Config, CrawlConfig, ConfigManager, load_config

__all__ = ['Config', 'CrawlConfig', 'ConfigManager', 'load_config']
