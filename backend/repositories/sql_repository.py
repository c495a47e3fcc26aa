"""SQL implementation of the tool repository using SQLAlchemy Core."""
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, delete, insert, select, update
from sqlalchemy.engine import Connection, Row
from sqlalchemy.exc import SQLAlchemyError

from database import ConnectionFactory
from errors import DatabaseConnectionError, PersistenceError, ValidationError
from .base import ToolRepository, Tool

logger = logging.getLogger(__name__)

metadata = MetaData()

tools_table = Table(
    'tools',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('name', String(100), nullable=False),
    Column('type', String(100), nullable=False),
    Column('primary_use', String(255), nullable=False),
    sqlite_autoincrement=True,
)


def _row_to_tool(row: Row) -> Tool:
    return Tool(
        id=row.id,
        name=row.name,
        type=row.type,
        primary_use=row.primary_use,
    )


class SQLToolRepository(ToolRepository):
    """ToolRepository backed by any SQLAlchemy-supported relational database.

    Every operation borrows the factory's connection, runs its statement and
    hands the connection back by closing it, whatever the outcome.
    """

    def __init__(self, connections: ConnectionFactory):
        self.connections = connections

    @contextmanager
    def _connection(self, operation: str) -> Iterator[Connection]:
        """Yield a live connection for one operation and always release it afterwards."""
        with self.connections.operation_lock:
            conn = self.connections.connect()
            try:
                yield conn
            except SQLAlchemyError as e:
                logger.error(f"Error during {operation}: {e}")
                raise PersistenceError(operation, str(e)) from e
            finally:
                self._release(operation)

    def _release(self, operation: str) -> None:
        try:
            self.connections.disconnect()
        except DatabaseConnectionError as e:
            logger.warning(f"Could not release connection after {operation}: {e}", exc_info=True)

    def init_schema(self) -> None:
        """Create the tool table if it doesn't exist."""
        with self._connection('init_schema') as conn:
            metadata.create_all(conn)
            conn.commit()
        logger.info("Tool table is ready")

    def create(self, tool: Tool) -> Tool:
        """Insert a new tool and return it re-read from the database."""
        with self._connection('create') as conn:
            result = conn.execute(
                insert(tools_table).values(
                    name=tool.name,
                    type=tool.type,
                    primary_use=tool.primary_use,
                )
            )
            conn.commit()

            pk = result.inserted_primary_key
            new_id = pk[0] if pk else None
            if not new_id:
                raise PersistenceError('create', 'no id generated')

            row = conn.execute(
                select(tools_table).where(tools_table.c.id == new_id)
            ).first()

        if row is None:
            raise PersistenceError('create', f"tool {new_id} was not found after insert")
        logger.info(f"Created tool {new_id} ({tool.name})")
        return _row_to_tool(row)

    def update(self, tool: Tool) -> bool:
        """Update name, type and primary use of an existing tool."""
        if not tool.is_persisted:
            raise ValidationError("A tool id is required to update a tool")

        with self._connection('update') as conn:
            result = conn.execute(
                update(tools_table)
                .where(tools_table.c.id == tool.id)
                .values(name=tool.name, type=tool.type, primary_use=tool.primary_use)
            )
            conn.commit()
            return result.rowcount > 0

    def delete(self, tool: Tool) -> bool:
        """Delete a tool by its ID."""
        if not tool.is_persisted:
            raise ValidationError("A tool id is required to delete a tool")

        with self._connection('delete') as conn:
            result = conn.execute(
                delete(tools_table).where(tools_table.c.id == tool.id)
            )
            conn.commit()
            return result.rowcount > 0

    def search(self, name_pattern: str) -> List[Tool]:
        """Retrieve tools whose name contains the pattern. An empty pattern matches every row."""
        stmt = select(tools_table)
        if name_pattern:
            stmt = stmt.where(tools_table.c.name.contains(name_pattern, autoescape=True))

        with self._connection('search') as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_tool(row) for row in rows]

    def get_by_id(self, tool_id: int) -> Optional[Tool]:
        """Retrieve a tool by its ID."""
        with self._connection('get_by_id') as conn:
            row = conn.execute(
                select(tools_table).where(tools_table.c.id == tool_id)
            ).first()
        return _row_to_tool(row) if row is not None else None
