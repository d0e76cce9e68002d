"""Data management components for Murmur"""

from .config import ConfigManager

__all__ = ['ConfigManager']
