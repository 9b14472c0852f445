"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Money columns: two decimal places, returned as Decimal
MoneyType = Numeric(12, 2, asdecimal=True)

# Percentages such as tax rates
RateType = Numeric(5, 2, asdecimal=True)
