"""This file contains the schemas for the application."""
from billscan.schemas.bills import BillResponse, BillWrite, ErrorResponse

__all__ = [
    "BillResponse",
    "BillWrite",
    "ErrorResponse",
]
