"""Base models and common helpers for MongoDB documents."""

from decimal import Decimal
from typing import Any, Dict, Optional
from bson import Decimal128, ObjectId
from pydantic import BaseModel as PydanticBaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def serialize_for_mongodb(value: Any) -> Any:
    """
    Convert Python values to BSON-compatible values.

    BSON has no native ``decimal.Decimal``, so money values are stored as
    ``Decimal128`` to keep them exact.
    """
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, dict):
        return {key: serialize_for_mongodb(item) for key, item in value.items()}
    if isinstance(value, list):
        return [serialize_for_mongodb(item) for item in value]
    return value


def deserialize_from_mongodb(value: Any) -> Any:
    """Convert BSON values read from MongoDB back to Python values."""
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: deserialize_from_mongodb(item) for key, item in value.items()}
    if isinstance(value, list):
        return [deserialize_from_mongodb(item) for item in value]
    return value


class BaseModel(PydanticBaseModel):
    """Base model for documents stored in MongoDB with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_mongo(self) -> Dict[str, Any]:
        """Convert model to MongoDB document."""
        data = self.model_dump(by_alias=True)
        if "id" in data:
            document_id = data.pop("id")
            if document_id is not None:
                data["_id"] = document_id
        return serialize_for_mongodb(data)

    @classmethod
    def from_mongo(cls, data: Optional[Dict[str, Any]]):
        """Create model instance from MongoDB document."""
        if not data:
            return None
        return cls.model_validate(deserialize_from_mongodb(data))
