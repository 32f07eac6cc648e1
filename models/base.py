"""
Base schemas for all models.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Accept both field names and aliases on input
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        populate_by_name=True
    )


class ColumnSchema(BaseSchema):
    """
    Base for schemas carrying CSV column names or cell values.

    Whitespace is significant there: " Name" and "Name" are different
    headers, and cell values must survive export unchanged.
    """
    model_config = ConfigDict(str_strip_whitespace=False)
