"""Common utilities for the metastore authorization engine."""

from .logger import setup_logger, get_logger
from .config import load_config, load_typed_config, MetastoreAuthzConfig

__all__ = [
    "MetastoreAuthzConfig",
    "get_logger",
    "load_config",
    "load_typed_config",
    "setup_logger",
]
