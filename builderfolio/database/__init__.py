"""
Builderfolio Database Layer

Neo4j async client and schema management.
"""

from builderfolio.database.client import Neo4jClient
from builderfolio.database.schema import SchemaManager

__all__ = ["Neo4jClient", "SchemaManager"]
