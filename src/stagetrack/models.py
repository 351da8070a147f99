"""Request and document shapes accepted by the API."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

import pydantic
from pydantic import BaseModel, Field, StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter, field_validator

from .errors import ValidationError

# Columns a client may change through a partial stage update.
UPDATABLE_STAGE_FIELDS = (
    "status",
    "brief",
    "description",
    "progress",
    "name",
    "icon",
    "weeks",
    "hours",
    "cost",
)

# Descriptive stage fields are opaque: any JSON scalar is stored as given.
Scalar = Union[StrictBool, StrictInt, StrictFloat, StrictStr, None]


class TaskDocument(BaseModel):
    """Task entry of an exported/imported stage"""
    text: Optional[str] = None
    completed: bool = False


class StageDocument(BaseModel):
    """Portable stage record used by export and import"""
    number: Scalar = None
    name: Scalar = None
    icon: Scalar = None
    weeks: Scalar = None
    hours: Scalar = None
    cost: Scalar = None
    status: Scalar = None
    brief: Scalar = None
    description: Scalar = None
    progress: Scalar = None
    tasks: List[TaskDocument] = Field(default_factory=list)


class StageCreate(BaseModel):
    """Body of POST /api/stages"""
    name: Scalar
    icon: Scalar = None
    weeks: Scalar = None
    hours: Scalar = None
    cost: Scalar = None
    brief: Scalar = None
    description: Scalar = None
    tasks: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name_present(cls, value):
        if value is None or value == "":
            raise ValueError("name is required")
        return value


class StageUpdate(BaseModel):
    """Body of PUT /api/stages/<id>; only fields sent by the client are applied"""
    status: Scalar = None
    brief: Scalar = None
    description: Scalar = None
    progress: Scalar = None
    name: Scalar = None
    icon: Scalar = None
    weeks: Scalar = None
    hours: Scalar = None
    cost: Scalar = None


class TaskText(BaseModel):
    """Body of task create / text update"""
    text: str


_stage_documents = TypeAdapter(List[StageDocument])


def _describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return "; ".join(parts) or "Invalid data format"


def parse_stage_create(payload: Any) -> StageCreate:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return StageCreate.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


def parse_task_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return TaskText.model_validate(payload).text
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


def parse_stage_documents(document: Any) -> List[StageDocument]:
    """Validate an import document: a list of stage objects."""
    if not isinstance(document, list):
        raise ValidationError("Invalid data format: expected a list of stages")
    try:
        return _stage_documents.validate_python(document)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid data format: {_describe(exc)}") from exc


def pick_stage_updates(payload: Any) -> Dict[str, Any]:
    """Return the allowlisted fields present in a partial update body."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        parsed = StageUpdate.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc
    updates = {field: getattr(parsed, field) for field in UPDATABLE_STAGE_FIELDS if field in parsed.model_fields_set}
    if not updates:
        raise ValidationError("No fields to update")
    return updates
