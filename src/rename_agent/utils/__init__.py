"""Utility modules for the rename agent."""

from .logger import get_logger, setup_logging
from .backups import BackupStore
from .file_ops import FileManager
from .paths import PathValidator

__all__ = ["get_logger", "setup_logging", "BackupStore", "FileManager", "PathValidator"]
