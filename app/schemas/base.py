"""
Base Schema Classes for Pydantic Models

Input schemas for receiving and payment operations inherit from these so
unknown fields are ignored consistently.
"""

from pydantic import BaseModel, ConfigDict


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    These schemas accept string UUIDs from callers and convert to UUID objects.
    """
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
        str_strip_whitespace=True,
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional by default for partial updates.
    """
    model_config = ConfigDict(
        extra='ignore',
        str_strip_whitespace=True,
    )
