"""
phonedir.admin - Administrator operations
"""

from phonedir.admin.manager import DirectoryAdmin

__all__ = ["DirectoryAdmin"]
