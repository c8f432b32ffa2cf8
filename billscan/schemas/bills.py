"""Bill schemas for request/response validation."""

from pydantic import AliasChoices, BaseModel, Field

from billscan.models.bill import Bill


class BillWrite(Bill):
    """Schema for creating or replacing a bill.

    An ``id`` in the body is kept on create and ignored on replace.
    """


class BillResponse(Bill):
    """Schema for bill responses."""

    id: str = Field(..., alias="id", validation_alias=AliasChoices("id", "_id"), description="Bill id")

    @classmethod
    def from_bill(cls, bill: Bill) -> "BillResponse":
        return cls.model_validate(bill.model_dump(by_alias=True))


class ErrorResponse(BaseModel):
    """Error body returned when an upload is rejected."""

    kind: str = Field(..., description="Failure category, e.g. 'ValidationError'")
    message: str = Field(..., description="Human-readable reason")
