"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module defines dependencies required for MySQL.
"""

import pymysql  # noqa: F401
