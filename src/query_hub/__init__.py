"""
QueryHub - Fluent SQL statement builder with a pluggable executor.

Builds parameterized SQL text plus a placeholder-to-value bind map, and runs
the result through a SQLAlchemy-backed executor.
"""

__version__ = "0.1.0"
