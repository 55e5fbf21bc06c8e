"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy import BigInteger, Integer

# BIGINT identifiers on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

# Foreign keys pointing at BigIntPK columns
BigIntFK = BigInteger().with_variant(Integer, "sqlite")
