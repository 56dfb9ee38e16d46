"""
Query

Statement building and execution against PostgreSQL.
"""

from entityrepo.query.executor import PgQueryExecutor, QueryExecutor
from entityrepo.query.select import Select, conjunction, equals

__all__ = ["PgQueryExecutor", "QueryExecutor", "Select", "conjunction", "equals"]
