"""Abstract base repository for tool storage."""
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from dataclasses import dataclass


@dataclass
class Tool:
    """A tool record - decoupled from any storage implementation.

    ``id`` is 0 until the database assigns one on create.
    """
    name: str = ''
    type: str = ''
    primary_use: str = ''
    id: int = 0

    @property
    def is_persisted(self) -> bool:
        return self.id > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'primary_use': self.primary_use,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tool':
        """Create a Tool from a dictionary."""
        return cls(
            id=int(data.get('id') or 0),
            name=data.get('name') or '',
            type=data.get('type') or '',
            primary_use=data.get('primary_use') or '',
        )


class ToolRepository(ABC):
    """Abstract repository for tool persistence operations."""

    @abstractmethod
    def create(self, tool: Tool) -> Tool:
        """Insert a new tool and return it as stored, with its generated id."""
        pass

    @abstractmethod
    def update(self, tool: Tool) -> bool:
        """Overwrite the stored fields of ``tool.id``. False if no row matched."""
        pass

    @abstractmethod
    def delete(self, tool: Tool) -> bool:
        """Delete the row for ``tool.id``. False if no row matched."""
        pass

    @abstractmethod
    def search(self, name_pattern: str) -> List[Tool]:
        """Retrieve all tools whose name contains ``name_pattern``."""
        pass

    @abstractmethod
    def get_by_id(self, tool_id: int) -> Optional[Tool]:
        """Retrieve a tool by its ID."""
        pass

    @abstractmethod
    def init_schema(self) -> None:
        """Create the tool table if it doesn't exist."""
        pass
