"""Shared pydantic base: camelCase JSON, construction from ORM rows."""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class RecordModel(CamelModel):
    """Immutable snapshot of a stored row, shared by both store backends."""

    class Config:
        frozen = True


class MessageSchema(BaseModel):
    message: str
