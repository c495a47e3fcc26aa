"""Connection lifecycle for the tool database."""
import logging
import threading
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from config import DatabaseSettings
from errors import ConfigurationError, DatabaseConnectionError

logger = logging.getLogger(__name__)


class ConnectionFactory:
    """Owns a single database connection, opening it lazily and reopening it once closed.

    The engine is created eagerly so a missing driver or malformed URL surfaces
    as a ConfigurationError at construction time rather than on first use.
    """

    def __init__(self, settings: DatabaseSettings):
        self.settings = settings
        self._lock = threading.Lock()
        # Held for a whole repository operation; every user of this factory shares the one connection.
        self._operation_lock = threading.RLock()
        self._connection: Optional[Connection] = None

        try:
            self._engine: Engine = create_engine(
                settings.sqlalchemy_url(),
                poolclass=NullPool,
                connect_args=settings.connect_args(),
                echo=settings.echo,
            )
        except (ArgumentError, ImportError) as e:
            raise ConfigurationError(
                f"Could not initialize database driver for {settings.describe()}: {e}"
            ) from e

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def operation_lock(self) -> threading.RLock:
        """Lock that serializes statement execution on the shared connection."""
        return self._operation_lock

    @property
    def is_connected(self) -> bool:
        """True while a usable connection is held."""
        conn = self._connection
        return conn is not None and not conn.closed and not conn.invalidated

    def connect(self) -> Connection:
        """Return the held connection, opening a new one if there is none or it was closed."""
        with self._lock:
            conn = self._connection
            if conn is None or conn.closed or conn.invalidated:
                logger.debug(f"Opening database connection to {self.settings.describe()}")
                try:
                    self._connection = self._engine.connect()
                except SQLAlchemyError as e:
                    logger.error(f"Database connection failed: {e}")
                    raise DatabaseConnectionError(
                        f"Error connecting to the database: {e}"
                    ) from e
            return self._connection

    def disconnect(self) -> None:
        """Close the held connection, if any. The reference is cleared even when closing fails."""
        with self._lock:
            if self._connection is None:
                return
            try:
                self._connection.close()
                logger.debug("Database connection closed")
            except SQLAlchemyError as e:
                raise DatabaseConnectionError(
                    f"Error closing the database connection: {e}"
                ) from e
            finally:
                self._connection = None

    def dispose(self) -> None:
        """Disconnect and release the engine."""
        try:
            self.disconnect()
        finally:
            self._engine.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
