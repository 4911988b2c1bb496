"""Base schema class for records materialized from the document store."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SchemaBase(BaseModel):
    """Base class for document schemas.

    Document fields are camelCase (``githubIssueUrl``); Python attributes
    are snake_case. Unknown document keys are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def from_document(cls, material: dict[str, Any]) -> Self:
        """
        Factory method to create a schema instance from a materialized document.

        Args:
            material: Projection of the document fields

        Returns:
            Pydantic schema instance
        """
        return cls.model_validate(material)

    def to_document(self) -> dict[str, Any]:
        """Dump to document field names, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
