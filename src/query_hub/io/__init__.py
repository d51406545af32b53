"""
I/O layer: executes built statements against a database and shapes results.
"""

from .database import Database
from .rows import materialize

__all__ = ["Database", "materialize"]
