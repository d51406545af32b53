"""Statement operations built on the core: multi-row INSERT batching."""

from .batch import DEFAULT_CHUNK_SIZE, BatchStatement, chunk_insert_multi, iter_chunks

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "BatchStatement",
    "chunk_insert_multi",
    "iter_chunks",
]
