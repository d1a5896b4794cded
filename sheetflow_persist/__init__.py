"""
Persistence facade exposing XLSX-backed stores.
"""

from .stores.file_mapping_store import FileMappingStore
from .stores.history_store import HistoryStore, init_history_store, recent_history, record_result

__all__ = [
    "FileMappingStore",
    "HistoryStore",
    "init_history_store",
    "recent_history",
    "record_result",
]
