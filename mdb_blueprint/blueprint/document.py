"""
Record base type.

Resources are declared as subclasses of Document. The class is both the
factory for fresh instances and the codec between request JSON, stored
BSON documents and response JSON.

Example:
    class Author(BaseModel):
        name: str = ""
        email: str = ""

    class Article(Document):
        title: str
        content: str = ""
        tag: list[str] = []
        author: Author = Author()
"""

from typing import Any, Mapping, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import ClientInputError, StoreOperationError
from ..utils.mongo import apply_set, clean_mongo_doc


class Document(BaseModel):
    """
    Base class for records exposed through a blueprint.

    The identifier is exposed as ``id`` in JSON and stored as ``_id``. It
    always holds the hex string of a BSON ObjectId, or None until the
    store (or a pre_create hook) assigns one.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_assignment=True)

    id: Optional[str] = Field(default=None, alias="_id")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_object_id(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        if isinstance(value, ObjectId):
            return str(value)
        if isinstance(value, str) and ObjectId.is_valid(value):
            return value
        raise ValueError("id must be a 24-character hex ObjectId")

    @classmethod
    def from_request(cls, payload: Any) -> "Document":
        """
        Build a fresh instance from a decoded JSON request body.

        Raises:
            ClientInputError: If the body is not an object or does not fit the model
        """
        if not isinstance(payload, dict):
            raise ClientInputError("Request body must be a JSON object")
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise ClientInputError(
                f"Invalid {cls.__name__} body", context={"errors": e.errors(include_url=False)}
            ) from e

    @classmethod
    def from_document(cls, raw: dict[str, Any]) -> "Document":
        """
        Build an instance from a stored document.

        Raises:
            StoreOperationError: If the stored document does not fit the model
        """
        try:
            return cls.model_validate(clean_mongo_doc(raw))
        except ValidationError as e:
            raise StoreOperationError(
                f"Stored document does not match {cls.__name__}",
                operation="decode",
                context={"id": str(raw.get("_id"))},
            ) from e

    def to_document(self, include_id: bool = True) -> dict[str, Any]:
        """Produce the BSON-ready document, with ``_id`` as an ObjectId."""
        doc = self.model_dump(exclude={"id"})
        if include_id and self.id is not None:
            doc = {"_id": ObjectId(self.id), **doc}
        return doc

    def to_response(self) -> dict[str, Any]:
        """Produce the JSON response body."""
        return self.model_dump(mode="json")

    def patched(self, changes: Mapping[str, Any]) -> "Document":
        """
        Return the record as it would read after ``$set: changes``.

        The instance itself is left untouched.

        Raises:
            ClientInputError: If a path cannot be applied or the result does
                not fit the model
        """
        doc = self.to_document(include_id=False)
        for path, value in changes.items():
            apply_set(doc, path, value)
        try:
            return type(self).model_validate({**doc, "_id": self.id})
        except ValidationError as e:
            raise ClientInputError(
                f"Invalid {type(self).__name__} patch",
                context={"errors": e.errors(include_url=False)},
            ) from e
