"""
Database adapter - MySQL/MariaDB databases, users and grants.

Statements go through mysql-connector-python. Values (user names, hosts,
passwords) are always driver parameters; database names cannot be
parameters in MySQL, so they are backtick-quoted with embedded backticks
doubled.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

import mysql.connector

from wpsite.config import Settings
from wpsite.core.errors import AdapterError, OperationInterrupted
from wpsite.core.models import HealthStatus
from wpsite.logging import get_site_logger
from wpsite.transport import Transport

logger = get_site_logger(__name__)

RESOURCE = "database"

Statement = Tuple[str, Sequence[Any]]


def quote_identifier(name: str) -> str:
    """
    Quote a MySQL identifier.

    Example:
        quote_identifier("demo_db")   # `demo_db`
        quote_identifier("we`ird")    # `we``ird`
    """
    return "`" + name.replace("`", "``") + "`"


class DatabaseAdapter:
    """
    MySQL administration over a root (or otherwise privileged) connection.

    Examples:
        db = DatabaseAdapter(settings)
        db.create_database("demo_db")
        db.create_user_with_grant("demo_user", "secret", "demo_db")
        db.drop_user("demo_user")
        db.drop_database("demo_db")
    """

    def __init__(
        self,
        settings: Settings,
        connect: Optional[Callable[..., Any]] = None,
        transport: Optional[Transport] = None,
    ):
        """
        Args:
            settings: Connection parameters come from db_* fields
            connect: Connection factory (default: mysql.connector.connect)
            transport: Used by probe() to check the db_services units;
                without one only the connection is checked
        """
        self.settings = settings
        self._connect = connect or mysql.connector.connect
        self.transport = transport
        self.user_host = settings.db_user_host

    def _connection_args(self) -> dict:
        args = {
            "user": self.settings.db_user,
            "password": self.settings.db_password,
            "connection_timeout": 10,
        }
        socket_path = self.settings.db_unix_socket
        if socket_path and Path(socket_path).exists():
            args["unix_socket"] = socket_path
        else:
            args["host"] = self.settings.db_host
            args["port"] = self.settings.db_port
        return args

    @contextmanager
    def _cursor(self, step: str) -> Iterator[Any]:
        try:
            connection = self._connect(**self._connection_args())
        except mysql.connector.Error as e:
            raise AdapterError(RESOURCE, step, f"cannot connect: {e}") from e

        try:
            cursor = connection.cursor()
            try:
                yield cursor
                connection.commit()
            finally:
                cursor.close()
        except mysql.connector.Error as e:
            raise AdapterError(RESOURCE, step, str(e)) from e
        finally:
            connection.close()

    def _execute(self, step: str, statements: List[Statement]) -> None:
        with self._cursor(step) as cursor:
            for sql, params in statements:
                cursor.execute(sql, tuple(params))

    def _query(self, step: str, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        with self._cursor(step) as cursor:
            cursor.execute(sql, tuple(params))
            return list(cursor.fetchall())

    # Connectivity

    def test_connection(self) -> bool:
        try:
            self._query("test connection", "SELECT 1")
        except AdapterError as e:
            logger.debug("MySQL connection test failed: %s", e)
            return False
        return True

    def service_running(self) -> bool:
        """True if any of settings.db_services is active under systemd."""
        for service in self.settings.db_services:
            _, code = self.transport.run_command(["systemctl", "is-active", "--quiet", service])
            if code == 0:
                return True
        return False

    def probe(self) -> HealthStatus:
        reasons = []
        if self.transport is not None and not self.service_running():
            reasons.append(f"none of {', '.join(self.settings.db_services)} is active")

        try:
            self._query("test connection", "SELECT 1")
        except AdapterError as e:
            reasons.append(e.diagnostic or "connection failed")

        return HealthStatus("mysql", not reasons, reasons)

    def server_version(self) -> str:
        try:
            rows = self._query("server version", "SELECT VERSION()")
        except AdapterError:
            return "Not available"
        return str(rows[0][0]) if rows else "Not available"

    # Databases

    def database_exists(self, name: str) -> bool:
        rows = self._query(
            "check database",
            "SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME = %s",
            (name,),
        )
        return len(rows) > 0

    def create_database(self, name: str) -> None:
        """
        Create a utf8mb4 database.

        Fails if the database already exists, so a later drop can only ever
        remove a database this adapter created.
        """
        self._execute("create database", [(
            f"CREATE DATABASE {quote_identifier(name)} "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci",
            (),
        )])
        logger.action("create", f"database {name}")

    def drop_database(self, name: str) -> bool:
        """
        Returns:
            True if the database existed and was dropped
        """
        if not self.database_exists(name):
            logger.warning("Database '%s' does not exist", name)
            return False

        self._execute("drop database", [
            (f"DROP DATABASE IF EXISTS {quote_identifier(name)}", ()),
        ])
        logger.action("delete", f"database {name}")
        return True

    def table_count(self, name: str) -> int:
        rows = self._query(
            "count tables",
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_schema = %s",
            (name,),
        )
        return int(rows[0][0]) if rows else 0

    def database_size(self, name: str) -> int:
        """Data plus index size in bytes."""
        rows = self._query(
            "database size",
            "SELECT COALESCE(SUM(data_length + index_length), 0) "
            "FROM information_schema.tables WHERE table_schema = %s",
            (name,),
        )
        return int(rows[0][0] or 0) if rows else 0

    # Users

    def user_exists(self, name: str) -> bool:
        rows = self._query(
            "check user",
            "SELECT User FROM mysql.user WHERE User = %s AND Host = %s",
            (name, self.user_host),
        )
        return len(rows) > 0

    def create_user(self, name: str, password: str) -> None:
        self._execute("create user", [
            ("CREATE USER %s@%s IDENTIFIED BY %s", (name, self.user_host, password)),
        ])
        logger.action("create", f"database user {name}@{self.user_host}")

    def drop_user(self, name: str) -> bool:
        """
        Returns:
            True if the user existed and was dropped
        """
        if not self.user_exists(name):
            logger.warning("User '%s' does not exist", name)
            return False

        self._execute("drop user", [
            ("DROP USER IF EXISTS %s@%s", (name, self.user_host)),
            ("FLUSH PRIVILEGES", ()),
        ])
        logger.action("delete", f"database user {name}@{self.user_host}")
        return True

    def grant_all(self, user: str, database: str) -> None:
        self._execute("grant privileges", [
            (f"GRANT ALL PRIVILEGES ON {quote_identifier(database)}.* TO %s@%s",
             (user, self.user_host)),
            ("FLUSH PRIVILEGES", ()),
        ])
        logger.info("Granted all privileges on %s to %s", database, user)

    def create_user_with_grant(self, user: str, password: str, database: str) -> None:
        """
        Create a user and grant it everything on one database.

        Either both happen or neither: if the grant fails or is interrupted
        the new user is dropped before the error is raised.
        """
        self.create_user(user, password)
        try:
            self.grant_all(user, database)
        except (AdapterError, OperationInterrupted, KeyboardInterrupt):
            try:
                self.drop_user(user)
            except AdapterError as undo_error:
                logger.error("Could not drop user '%s' after failed grant: %s",
                             user, undo_error)
            raise
