"""
Infrastructure Layer

Reusable services that assemble SQL statements without touching a database.

Components:
- sql: Clause slot model, value classification, batch chunking and the
  fluent QueryBuilder

Usage:
    from query_hub.infrastructure.sql import QueryBuilder, raw
"""

__all__: list[str] = []
