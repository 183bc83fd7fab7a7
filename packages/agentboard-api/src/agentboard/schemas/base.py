"""Shared pydantic configuration for wire models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models exchanged with the dashboard clients and the relay.

    Fields are snake_case in Python and camelCase on the wire; input accepts
    either spelling.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_wire(self) -> dict:
        """Serialise with camelCase keys, ready for JSON encoding."""
        return self.model_dump(mode="json", by_alias=True)


def enum_value(value) -> str:
    """Plain string for a field that may hold an Enum member or its value."""
    return value.value if isinstance(value, Enum) else value
