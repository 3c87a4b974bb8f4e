from .base import Filter, GroupStat, Row, Search, Storage, eq
from .memory import MemoryStorage
from .sql import SqlStorage

__all__ = [
    "Filter",
    "GroupStat",
    "MemoryStorage",
    "Row",
    "Search",
    "SqlStorage",
    "Storage",
    "eq",
]
