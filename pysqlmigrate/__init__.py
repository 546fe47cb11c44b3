"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This library helps you describe tables, migrations and queries with a fluent builder, compile them into
dialect-correct parameterized SQL, and map result-sets onto data-class instances.
"""

__version__ = "0.1.0"
__author__ = "Levente Hunyadi"
__copyright__ = "Copyright 2023-2025, Levente Hunyadi"
__license__ = "MIT"
__maintainer__ = "Levente Hunyadi"
__status__ = "Beta"
