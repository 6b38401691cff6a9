"""
Frappe DB client

A Python client for the document resource API of a Frappe site.

Example usage:
    from frappe_db import AsyncDocumentClient, DocumentClient

    # Synchronous client
    with DocumentClient("https://erp.example.com") as db:
        todo = db.fetch_document("ToDo", "abc123")

    # Async client
    async with AsyncDocumentClient("https://erp.example.com") as db:
        latest = await db.fetch_last_document("ToDo")
        open_count = await db.count_documents("ToDo", [["status", "=", "Open"]])
"""

from frappe_db.client import AsyncDocumentClient, DocumentClient
from frappe_db.exceptions import (
    RemoteOperationError,
    RequestTimeoutError,
    TransportError,
)
from frappe_db.models import (
    Filter,
    Filters,
    FrappeDoc,
    GetDocListArgs,
    GetLastDocArgs,
    OrderBy,
    SortOrder,
)

__version__ = "0.1.0"
__all__ = [
    # Client classes
    "AsyncDocumentClient",
    "DocumentClient",
    # Query models
    "Filter",
    "Filters",
    "GetDocListArgs",
    "GetLastDocArgs",
    "OrderBy",
    "SortOrder",
    # Document models
    "FrappeDoc",
    # Exceptions
    "RemoteOperationError",
    "TransportError",
    "RequestTimeoutError",
]
