"""Persistence facade for bills stored in MongoDB."""

import asyncio
import logging
from decimal import DecimalException
from typing import Any, Awaitable, Dict, List, Optional, TypeVar
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from billscan.models.bill import Bill
from billscan.services.results import ErrorKind, Failure, Ok, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


def id_filter(bill_id: str) -> Dict[str, Any]:
    """
    Build a query matching a bill id.

    A bill inserted without an id gets an ObjectId ``_id`` from MongoDB,
    while assigned ids are stored as strings, so both forms are matched.
    """
    if ObjectId.is_valid(bill_id):
        return {"_id": {"$in": [bill_id, ObjectId(bill_id)]}}
    return {"_id": bill_id}


class BillStore:
    """CRUD operations over the bills collection."""

    def __init__(self, collection, timeout_seconds: float = 10.0):
        self._collection = collection
        self._timeout = timeout_seconds

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> Result[T]:
        try:
            return Ok(await asyncio.wait_for(awaitable, timeout=self._timeout))
        except asyncio.TimeoutError:
            logger.error(f"MongoDB {operation} timed out after {self._timeout}s")
            return Failure(ErrorKind.STORAGE, f"Timed out while trying to {operation}")
        except DuplicateKeyError as e:
            logger.error(f"MongoDB {operation} failed with duplicate key: {str(e)}")
            return Failure(ErrorKind.STORAGE, "A bill with this id already exists", detail=str(e))
        except PyMongoError as e:
            logger.error(f"MongoDB {operation} failed: {str(e)}", exc_info=True)
            return Failure(ErrorKind.STORAGE, f"Failed to {operation}", detail=str(e))

    def _to_document(self, bill: Bill) -> Result[Dict[str, Any]]:
        try:
            return Ok(bill.to_mongo())
        except DecimalException as e:
            logger.error(f"Bill {bill.id} has amounts that cannot be stored as Decimal128: {type(e).__name__}")
            return Failure(ErrorKind.STORAGE, "The bill contains amounts that cannot be stored", detail=repr(e))

    async def insert(self, bill: Bill) -> Result[Bill]:
        """Insert a new bill and return it with its id."""
        converted = self._to_document(bill)
        if isinstance(converted, Failure):
            return converted
        document = converted.value
        logger.info(f"Inserting bill into MongoDB: {document.get('_id')}")
        result = await self._run("save the bill", self._collection.insert_one(document))
        if isinstance(result, Failure):
            return result

        inserted_id = str(result.value.inserted_id)
        logger.info(f"Bill inserted with MongoDB ID: {inserted_id}")
        return Ok(bill.model_copy(update={"id": inserted_id}))

    async def find_by_id(self, bill_id: str) -> Result[Optional[Bill]]:
        """Return the bill with the given id, or Ok(None) when there is none."""
        result = await self._run("load the bill", self._collection.find_one(id_filter(bill_id)))
        if isinstance(result, Failure):
            return result
        return Ok(Bill.from_mongo(result.value))

    async def find_all(self) -> Result[List[Bill]]:
        """Return every stored bill."""
        result = await self._run("load the bills", self._collection.find({}).to_list(length=None))
        if isinstance(result, Failure):
            return result
        bills = [Bill.from_mongo(document) for document in result.value]
        logger.debug(f"Loaded {len(bills)} bills from MongoDB")
        return Ok(bills)

    async def replace(self, bill_id: str, bill: Bill) -> Result[bool]:
        """Replace a stored bill; Ok(False) when no bill has the id."""
        converted = self._to_document(bill.model_copy(update={"id": bill_id}))
        if isinstance(converted, Failure):
            return converted
        document = converted.value
        # The stored _id keeps whatever BSON type it already had.
        document.pop("_id", None)
        result = await self._run(
            "update the bill",
            self._collection.replace_one(id_filter(bill_id), document),
        )
        if isinstance(result, Failure):
            return result
        logger.info(f"Replaced bill {bill_id}: matched {result.value.matched_count}")
        return Ok(result.value.matched_count > 0)

    async def delete(self, bill_id: str) -> Result[bool]:
        """Delete a stored bill; Ok(False) when no bill has the id."""
        result = await self._run("delete the bill", self._collection.delete_one(id_filter(bill_id)))
        if isinstance(result, Failure):
            return result
        logger.info(f"Deleted bill {bill_id}: {result.value.deleted_count} document(s)")
        return Ok(result.value.deleted_count > 0)
