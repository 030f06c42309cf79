"""Shared model base classes."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys.

    Used for payloads that leave the process (checkpoint files, the stats
    endpoint).  Python code still uses the snake_case field names, and
    either spelling is accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
