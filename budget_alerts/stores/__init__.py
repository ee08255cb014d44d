"""Implementations of the engine's store contracts."""

from .memory import memory_stores
from .sql import sql_stores

__all__ = ["memory_stores", "sql_stores"]
