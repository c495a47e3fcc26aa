# Repository pattern for database abstraction
from .base import Tool, ToolRepository
from .factory import create_repository
from .sql_repository import SQLToolRepository

__all__ = ['Tool', 'ToolRepository', 'SQLToolRepository', 'create_repository']
