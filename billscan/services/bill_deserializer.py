"""Parse, validate and identify bills from extracted JSON text."""

import json
import logging
from decimal import Decimal
from bson import ObjectId
from pydantic import ValidationError

from billscan.models.bill import Bill
from billscan.services.results import ErrorKind, Failure, Ok, Result

logger = logging.getLogger(__name__)


def parse_bill(text: str) -> Result[Bill]:
    """
    Parse JSON text into a Bill.

    Numbers are read as Decimal so amounts are never rounded through float.
    Missing optional fields take their defaults; vendor and total amount are
    kept as parsed, even when absent.
    """
    try:
        data = json.loads(text, parse_float=Decimal)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse extracted text as JSON: {str(e)}")
        logger.error(f"Response text: {text}")
        return Failure(
            ErrorKind.DESERIALIZATION,
            "The extraction service returned invalid JSON",
            detail=f"{e}: {text}",
        )

    if not isinstance(data, dict):
        logger.error(f"Extracted JSON is a {type(data).__name__}, expected an object")
        return Failure(
            ErrorKind.DESERIALIZATION,
            "The extraction service returned JSON that is not a bill",
            detail=text,
        )

    try:
        bill = Bill.model_validate(data)
    except ValidationError as e:
        logger.error(f"Extracted JSON does not match the bill structure: {e.error_count()} error(s)")
        return Failure(
            ErrorKind.DESERIALIZATION,
            "The extraction service returned bill fields in an unexpected format",
            detail=f"{e}: {text}",
        )

    return Ok(bill)


def validate_bill(bill: Bill) -> Result[Bill]:
    """Reject bills without a vendor or with a total amount that is not positive."""
    if not bill.vendor or not bill.vendor.strip():
        logger.warning("Extracted bill has no vendor")
        return Failure(ErrorKind.VALIDATION, "Could not read the vendor from the bill")

    if bill.total_amount is None or bill.total_amount <= 0:
        logger.warning(f"Extracted bill from {bill.vendor} has invalid total amount: {bill.total_amount}")
        return Failure(ErrorKind.VALIDATION, "Could not read a positive total amount from the bill")

    return Ok(bill)


def new_bill_id() -> str:
    """Generate a store-compatible bill id."""
    return str(ObjectId())


def assign_identifier(bill: Bill) -> Bill:
    """Give a bill a new id unless it already has one."""
    if bill.id and bill.id.strip():
        return bill
    return bill.model_copy(update={"id": new_bill_id()})


def deserialize_bill(text: str) -> Result[Bill]:
    """Parse and validate a bill, assigning an id when it has none."""
    parsed = parse_bill(text)
    if isinstance(parsed, Failure):
        return parsed

    validated = validate_bill(parsed.value)
    if isinstance(validated, Failure):
        return validated

    bill = assign_identifier(validated.value)
    logger.info(f"Deserialized bill {bill.id}: {bill.vendor}, total {bill.total_amount}, {len(bill.line_items)} line item(s)")
    return Ok(bill)
