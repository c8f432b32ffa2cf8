"""Bill API routes."""

import logging
from typing import List
from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status

from billscan.api.error_handlers import FailureResponseError
from billscan.schemas.bills import BillResponse, BillWrite, ErrorResponse
from billscan.services.bill_deserializer import assign_identifier, validate_bill
from billscan.services.bill_pipeline import BillIngestionPipeline
from billscan.services.bill_store import BillStore
from billscan.services.image_intake import MAX_IMAGE_BYTES
from billscan.services.results import Failure

logger = logging.getLogger(__name__)
router = APIRouter(tags=["bills"])


def get_bill_store(request: Request) -> BillStore:
    """Bill store created at startup."""
    return request.app.state.bill_store


def get_pipeline(request: Request) -> BillIngestionPipeline:
    """Ingestion pipeline created at startup."""
    return request.app.state.pipeline


def raise_for_failure(failure: Failure) -> None:
    """Reject the request with the Failure's kind and message."""
    raise FailureResponseError(failure)


def _not_found(bill_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Bill {bill_id} not found",
    )


@router.get("", response_model=List[BillResponse], status_code=status.HTTP_200_OK)
async def get_all_bills_endpoint(store: BillStore = Depends(get_bill_store)) -> List[BillResponse]:
    """Get all bills."""
    logger.info("Fetching all bills")
    result = await store.find_all()
    if isinstance(result, Failure):
        raise_for_failure(result)
    logger.info(f"Successfully retrieved {len(result.value)} bills")
    return [BillResponse.from_bill(bill) for bill in result.value]


@router.get("/{bill_id}", response_model=BillResponse, status_code=status.HTTP_200_OK)
async def get_bill_endpoint(bill_id: str, store: BillStore = Depends(get_bill_store)) -> BillResponse:
    """Get a single bill by id."""
    result = await store.find_by_id(bill_id)
    if isinstance(result, Failure):
        raise_for_failure(result)
    if result.value is None:
        raise _not_found(bill_id)
    return BillResponse.from_bill(result.value)


@router.post(
    "",
    response_model=BillResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_bill_endpoint(bill: BillWrite, store: BillStore = Depends(get_bill_store)) -> BillResponse:
    """
    Create a bill from manually entered data.

    The same vendor and total amount checks as image uploads apply. A new id
    is generated unless the body carries one.
    """
    logger.info(f"Creating bill for vendor: {bill.vendor}")
    validated = validate_bill(bill)
    if isinstance(validated, Failure):
        raise_for_failure(validated)

    result = await store.insert(assign_identifier(validated.value))
    if isinstance(result, Failure):
        raise_for_failure(result)
    return BillResponse.from_bill(result.value)


@router.put("/{bill_id}", response_model=BillResponse, status_code=status.HTTP_200_OK)
async def update_bill_endpoint(
    bill_id: str,
    bill: BillWrite,
    store: BillStore = Depends(get_bill_store),
) -> BillResponse:
    """Replace a bill. The id in the path wins over any id in the body."""
    logger.info(f"Updating bill: {bill_id}")
    result = await store.replace(bill_id, bill)
    if isinstance(result, Failure):
        raise_for_failure(result)
    if not result.value:
        raise _not_found(bill_id)
    return BillResponse.from_bill(bill.model_copy(update={"id": bill_id}))


@router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bill_endpoint(bill_id: str, store: BillStore = Depends(get_bill_store)) -> Response:
    """Delete a bill."""
    logger.info(f"Deleting bill: {bill_id}")
    result = await store.delete(bill_id)
    if isinstance(result, Failure):
        raise_for_failure(result)
    if not result.value:
        raise _not_found(bill_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/upload",
    response_model=BillResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_bill_endpoint(
    file: UploadFile = File(...),
    pipeline: BillIngestionPipeline = Depends(get_pipeline),
) -> BillResponse:
    """
    Upload a receipt image and store the bill extracted from it.

    Accepts .jpg, .jpeg and .png files up to 5 MB. Rejected uploads return
    ``{"kind", "message"}`` with status 400 for unusable input and 500 when
    extraction or storage fails. Nothing is stored for a rejected upload.
    """
    logger.info(f"Received bill upload: {file.filename}")

    # At most one byte past the limit is passed on; file.size is the full spooled size.
    data = await file.read(MAX_IMAGE_BYTES + 1)
    declared_length = file.size

    result = await pipeline.upload_image(data, file.filename, declared_length)
    if isinstance(result, Failure):
        raise_for_failure(result)

    logger.info(f"Bill created from upload: {result.value.id}")
    return BillResponse.from_bill(result.value)
