"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy import Numeric, Uuid

# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid

# Money columns: paise precision, up to 9,999,999,999.99
MoneyType = Numeric(12, 2)

# Milk quantities in liters (millilitre precision)
QuantityType = Numeric(10, 3)
