from ..mysql.generator import MySQLGenerator


class MariaDBGenerator(MySQLGenerator):
    "Generator for MariaDB, which shares the auto-increment, upsert and `ALTER` syntax of MySQL."
