"""
Tool Form Module

Validates operator input for the tool write form and dispatches the chosen
action to the repository. The action kind lives here only; the repository
exposes one named method per operation.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, StringConstraints
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from repositories.base import Tool, ToolRepository

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Transaction completed successfully"
NO_ACTION_MESSAGE = "No action was performed"
REQUIRED_MESSAGE = "All fields are required"

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ToolAction(Enum):
    """What the write form is about to do with a tool."""
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'

    @property
    def title(self) -> str:
        return f"{self.value.capitalize()} Tool"

    @property
    def submit_label(self) -> str:
        return 'Delete' if self is ToolAction.DELETE else 'Save'

    @property
    def editable(self) -> bool:
        """Delete shows the fields read-only."""
        return self is not ToolAction.DELETE


class ToolForm(BaseModel):
    """Required tool fields, trimmed."""
    name: RequiredText
    type: RequiredText
    primary_use: RequiredText


@dataclass
class FormResult:
    """Outcome of submitting the write form."""
    ok: bool
    message: str
    tool: Optional[Tool] = None


def validate(action: ToolAction, tool: Tool) -> Tool:
    """Return a copy of ``tool`` with trimmed fields, or raise ValidationError."""
    try:
        form = ToolForm(name=tool.name or '', type=tool.type or '', primary_use=tool.primary_use or '')
    except PydanticValidationError as e:
        errors = e.errors()
        fields = ', '.join(str(err['loc'][0]) for err in errors)
        logger.debug(f"Rejected {action.value} form, invalid fields: {fields}")
        not_text = [str(err['loc'][0]) for err in errors if err['type'] == 'string_type']
        if not_text:
            raise ValidationError(f"{not_text[0]} must be text") from e
        raise ValidationError(REQUIRED_MESSAGE) from e

    if action is not ToolAction.CREATE and not tool.is_persisted:
        raise ValidationError(f"A tool id is required to {action.value} a tool")

    return Tool(id=tool.id, name=form.name, type=form.type, primary_use=form.primary_use)


def submit(repository: ToolRepository, action: ToolAction, tool: Tool) -> FormResult:
    """Validate the form and run the matching repository operation."""
    tool = validate(action, tool)

    if action is ToolAction.CREATE:
        created = repository.create(tool)
        ok = created is not None and created.is_persisted
        result_tool = created
    elif action is ToolAction.UPDATE:
        ok = repository.update(tool)
        result_tool = tool
    else:
        ok = repository.delete(tool)
        result_tool = tool

    if not ok:
        logger.info(f"{action.title} for id {tool.id}: nothing changed")
        return FormResult(ok=False, message=NO_ACTION_MESSAGE)

    return FormResult(ok=True, message=SUCCESS_MESSAGE, tool=result_tool)
