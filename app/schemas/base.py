"""
Base classes for request and response schemas.

Request bodies come from the dashboard in camelCase (``dayOfMonth``) and
fields declare those names as aliases; responses are read straight from
ORM objects.
"""

from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """Response schema built from an ORM instance."""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """Create payload: accepts aliases or field names, ignores unknown keys."""
    model_config = ConfigDict(
        extra='ignore',
        populate_by_name=True,
    )


class BaseUpdateSchema(BaseModel):
    """Partial update payload; only fields the client sent are applied."""
    model_config = ConfigDict(
        extra='ignore',
        populate_by_name=True,
    )
