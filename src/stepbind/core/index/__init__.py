"""Binding index and indexing orchestration."""

from stepbind.core.index.binding_index import BindingIndex, IndexStats
from stepbind.core.index.index_manager import IndexManager

__all__ = ["BindingIndex", "IndexManager", "IndexStats"]
