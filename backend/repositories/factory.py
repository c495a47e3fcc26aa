"""Factory for wiring a repository to its connection factory."""
import logging
from typing import Optional

from config import DatabaseSettings
from database import ConnectionFactory
from .base import ToolRepository
from .sql_repository import SQLToolRepository

logger = logging.getLogger(__name__)


def create_repository(settings: Optional[DatabaseSettings] = None,
                      connections: Optional[ConnectionFactory] = None) -> ToolRepository:
    """
    Build a SQL tool repository.

    Args:
        settings: Database settings; read from the environment when omitted
        connections: An existing connection factory to share instead of creating one

    Returns:
        ToolRepository implementation

    Raises:
        ConfigurationError: if the database driver cannot be loaded
    """
    if connections is None:
        settings = settings or DatabaseSettings.from_env()
        connections = ConnectionFactory(settings)

    logger.info(f"Using tool database at {connections.settings.describe()}")
    return SQLToolRepository(connections)
