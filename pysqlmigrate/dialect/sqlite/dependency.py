"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module defines dependencies required for SQLite.
"""

import sqlite3  # noqa: F401
