"""
Client classes for the Frappe DB client.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Callable, Literal, Optional, TypeVar, Union

import httpx
from pydantic import BaseModel

from frappe_db.exceptions import (
    RemoteOperationError,
    RequestTimeoutError,
    TransportError,
    error_body,
    raise_for_status,
)
from frappe_db.models import Filters, GetDocListArgs, GetLastDocArgs

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

TokenType = Literal["Bearer", "token"]

COUNT_METHOD = "/api/method/frappe.client.get_count"


def _json_default(value: Any) -> Any:
    # datetimes in the server's "YYYY-MM-DD HH:MM:SS" form
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any) -> str:
    """Encode a query value the way the server's JSON parser expects it (compact)."""
    return json.dumps(value, separators=(",", ":"), default=_json_default)


def _coerce_args(args: Union[GetLastDocArgs, Mapping[str, Any]]) -> GetDocListArgs:
    """Validate caller args into GetDocListArgs, keeping track of what was set."""
    if isinstance(args, BaseModel):
        args = args.model_dump(exclude_unset=True)
    return GetDocListArgs.model_validate(args)


def build_list_params(args: Optional[Union[GetDocListArgs, Mapping[str, Any]]]) -> dict[str, Any]:
    """
    Build the query parameters of a list request.

    No args means no parameters at all, leaving every default to the server.
    """
    if args is None:
        return {}

    query = _coerce_args(args)
    params = {
        "fields": to_json(query.fields) if query.fields is not None else None,
        "filters": to_json(query.filters) if query.filters is not None else None,
        "or_filters": to_json(query.or_filters) if query.or_filters is not None else None,
        "order_by": query.order_by.as_param() if query.order_by else "",
        "group_by": query.group_by,
        "limit": query.limit,
        "limit_start": query.limit_start,
        "as_dict": query.as_dict,
    }
    return {key: value for key, value in params.items() if value is not None}


def _as_body(value: Union[BaseModel, Mapping[str, Any]]) -> dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_unset=True)
    return json.loads(to_json(dict(value)))


def _unwrap(body: Any, key: str) -> Any:
    if isinstance(body, dict):
        return body.get(key)
    return None


def _validate(model: Optional[type[M]], doc: Any) -> Any:
    if model is None or doc is None:
        return doc
    return model.model_validate(doc)


class AsyncDocumentClient:
    """
    Async client for the document resource API of a Frappe site.

    Usage:
        async with AsyncDocumentClient("https://erp.example.com") as db:
            todo = await db.create_document("ToDo", {"description": "Ship it"})
            todos = await db.list_documents(
                "ToDo",
                {"fields": ["name", "status"], "filters": [["status", "=", "Open"]]},
            )

    An existing ``httpx.AsyncClient`` can be passed as ``transport``; it is then
    used directly and left open when the client is done with it.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: Optional[httpx.AsyncClient] = None,
        use_token: bool = False,
        token: Optional[Callable[[], str]] = None,
        token_type: TokenType = "Bearer",
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ):
        """
        Initialize the client.

        Args:
            base_url: URL of the Frappe site.
            transport: Optional pre-configured HTTP client to send requests with.
            use_token: Whether to send token based authentication.
            token: Callable returning the current token, called on every request.
            token_type: Authorization scheme, ``"Bearer"`` or ``"token"``.
            timeout: Request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
        """
        self.base_url = base_url.rstrip("/")
        self.use_token = use_token
        self.token = token
        self.token_type = token_type
        self.timeout = timeout
        self._verify_ssl = verify_ssl
        self._client: Optional[httpx.AsyncClient] = transport
        self._owns_client = transport is None

    async def __aenter__(self) -> "AsyncDocumentClient":
        """Enter async context."""
        if self._owns_client:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                verify=self._verify_ssl,
            )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context."""
        if self._owns_client and self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client."""
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    def _get_headers(self) -> dict[str, str]:
        """Get headers for requests."""
        headers = {"Accept": "application/json"}
        if self.use_token and self.token:
            headers["Authorization"] = f"{self.token_type} {self.token()}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        prefer_server_message: bool = False,
    ) -> Any:
        """
        Make an HTTP request and return the decoded body.

        Any non-2xx response, or a request that never got a response, is
        raised as a RemoteOperationError carrying ``message``.
        """
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = await self.client.request(
                method=method,
                url=path,
                json=data,
                params=params,
                headers=self._get_headers(),
            )
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out: %s", method, path, e)
            raise RequestTimeoutError(message, exception=type(e).__name__) from e
        except httpx.RequestError as e:
            logger.warning("%s %s failed without a response: %s", method, path, e)
            raise TransportError(message, exception=type(e).__name__) from e

        logger.debug("%s %s -> %d", method, path, response.status_code)

        if not response.is_success:
            try:
                error_data = error_body(response.json())
            except ValueError:
                error_data = {"error": response.text}
            logger.warning(
                "%s %s returned %d: %s", method, path, response.status_code, message
            )
            raise_for_status(
                response.status_code,
                response.reason_phrase,
                error_data,
                message,
                prefer_server_message=prefer_server_message,
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError:
            logger.warning(
                "%s %s returned %d with a non-JSON body", method, path, response.status_code
            )
            raise RemoteOperationError(
                message,
                http_status=response.status_code,
                http_status_text=response.reason_phrase,
                response_data={"error": response.text},
            )

    # ==================== Documents ====================

    async def fetch_document(
        self,
        doctype: str,
        name: Optional[str] = "",
        model: Optional[type[M]] = None,
    ) -> Union[dict[str, Any], M]:
        """
        Get a single document.

        Args:
            doctype: Name of the doctype.
            name: Name of the document.
            model: Optional pydantic model to validate the document into.

        Returns:
            The document.
        """
        body = await self._request(
            "GET",
            f"/api/resource/{doctype}/{name or ''}",
            "There was an error while fetching the document.",
        )
        return _validate(model, _unwrap(body, "data"))

    async def list_documents(
        self,
        doctype: str,
        args: Optional[Union[GetDocListArgs, Mapping[str, Any]]] = None,
        model: Optional[type[M]] = None,
    ) -> list[Any]:
        """
        List documents of a doctype.

        Args:
            doctype: Name of the doctype.
            args: Fields, filters, ordering, grouping and pagination of the query.
            model: Optional pydantic model to validate each row into.

        Returns:
            The matching rows, as dicts unless ``as_dict`` was turned off.
        """
        body = await self._request(
            "GET",
            f"/api/resource/{doctype}",
            "There was an error while fetching the documents.",
            params=build_list_params(args),
        )
        rows = _unwrap(body, "data") or []
        if model is not None:
            return [model.model_validate(row) for row in rows]
        return rows

    async def create_document(
        self,
        doctype: str,
        value: Union[BaseModel, Mapping[str, Any]],
        model: Optional[type[M]] = None,
    ) -> Union[dict[str, Any], M]:
        """
        Create a new document.

        Args:
            doctype: Name of the doctype.
            value: Fields of the new document, sent as the request body.
            model: Optional pydantic model to validate the result into.

        Returns:
            The complete created document.
        """
        body = await self._request(
            "POST",
            f"/api/resource/{doctype}",
            "There was an error while creating the document.",
            data=_as_body(value),
            prefer_server_message=True,
        )
        return _validate(model, _unwrap(body, "data"))

    async def update_document(
        self,
        doctype: str,
        name: Optional[str],
        value: Union[BaseModel, Mapping[str, Any]],
        model: Optional[type[M]] = None,
    ) -> Union[dict[str, Any], M]:
        """
        Update a document.

        Args:
            doctype: Name of the doctype.
            name: Name of the document.
            value: Only the fields to change.
            model: Optional pydantic model to validate the result into.

        Returns:
            The complete updated document.
        """
        body = await self._request(
            "PUT",
            f"/api/resource/{doctype}/{name or ''}",
            "There was an error while updating the document.",
            data=_as_body(value),
            prefer_server_message=True,
        )
        return _validate(model, _unwrap(body, "data"))

    async def delete_document(self, doctype: str, name: Optional[str] = None) -> Any:
        """
        Delete a document.

        Returns:
            The response body as sent by the server, ``{"message": "ok"}``.
        """
        return await self._request(
            "DELETE",
            f"/api/resource/{doctype}/{name or ''}",
            "There was an error while deleting the document.",
        )

    async def count_documents(
        self,
        doctype: str,
        filters: Optional[Filters] = None,
        cache: bool = False,
        debug: bool = False,
    ) -> int:
        """
        Count documents of a doctype matching the filters.

        Args:
            doctype: Name of the doctype.
            filters: Filters applied to the count query.
            cache: Ask the server to cache the result.
            debug: Ask the server to print the query it runs.

        Returns:
            The number of matching documents.
        """
        params: dict[str, Any] = {
            "doctype": doctype,
            "filters": to_json(filters if filters is not None else []),
        }
        # only sent when enabled, never as a literal false
        if cache:
            params["cache"] = True
        if debug:
            params["debug"] = True

        body = await self._request(
            "GET",
            COUNT_METHOD,
            "There was an error while getting the count.",
            params=params,
        )
        return _unwrap(body, "message")

    async def fetch_last_document(
        self,
        doctype: str,
        args: Optional[Union[GetLastDocArgs, Mapping[str, Any]]] = None,
        model: Optional[type[M]] = None,
    ) -> Union[dict[str, Any], M]:
        """
        Get the most recently created document of a doctype.

        Caller args are laid over the default ``creation desc`` ordering; a
        caller ``order_by`` replaces it entirely. Returns ``{}`` when the
        query matches nothing.
        """
        query: dict[str, Any] = {"order_by": {"field": "creation", "order": "desc"}}
        if args is not None:
            query = {**query, **_coerce_args(args).model_dump(exclude_unset=True)}
        query = {**query, "limit": 1, "fields": ["name"]}

        rows = await self.list_documents(doctype, GetDocListArgs.model_validate(query))
        if not rows:
            return {}

        first = rows[0]
        name = first["name"] if isinstance(first, Mapping) else first[0]
        return await self.fetch_document(doctype, name, model=model)


class DocumentClient:
    """
    Synchronous wrapper for AsyncDocumentClient.

    Usage:
        with DocumentClient("https://erp.example.com", use_token=True,
                            token=lambda: "key:secret", token_type="token") as db:
            count = db.count_documents("ToDo", [["status", "=", "Open"]])
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: Optional[httpx.AsyncClient] = None,
        use_token: bool = False,
        token: Optional[Callable[[], str]] = None,
        token_type: TokenType = "Bearer",
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ):
        """Initialize the synchronous client."""
        self._async_client = AsyncDocumentClient(
            base_url=base_url,
            transport=transport,
            use_token=use_token,
            token=token,
            token_type=token_type,
            timeout=timeout,
            verify_ssl=verify_ssl,
        )
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        """Get or create the private event loop."""
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop

    def _run(self, coro: Any) -> Any:
        """Run a coroutine synchronously."""
        loop = self._get_loop()
        return loop.run_until_complete(coro)

    def __enter__(self) -> "DocumentClient":
        """Enter context."""
        self._run(self._async_client.__aenter__())
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context."""
        self._run(self._async_client.__aexit__(exc_type, exc_val, exc_tb))
        if self._loop and not self._loop.is_running():
            self._loop.close()
            self._loop = None

    # Delegate all methods to async client
    def fetch_document(
        self, doctype: str, name: Optional[str] = "", model: Optional[type[M]] = None
    ) -> Union[dict[str, Any], M]:
        """Get a single document."""
        return self._run(self._async_client.fetch_document(doctype, name, model))

    def list_documents(
        self,
        doctype: str,
        args: Optional[Union[GetDocListArgs, Mapping[str, Any]]] = None,
        model: Optional[type[M]] = None,
    ) -> list[Any]:
        """List documents of a doctype."""
        return self._run(self._async_client.list_documents(doctype, args, model))

    def create_document(
        self,
        doctype: str,
        value: Union[BaseModel, Mapping[str, Any]],
        model: Optional[type[M]] = None,
    ) -> Union[dict[str, Any], M]:
        """Create a new document."""
        return self._run(self._async_client.create_document(doctype, value, model))

    def update_document(
        self,
        doctype: str,
        name: Optional[str],
        value: Union[BaseModel, Mapping[str, Any]],
        model: Optional[type[M]] = None,
    ) -> Union[dict[str, Any], M]:
        """Update a document."""
        return self._run(self._async_client.update_document(doctype, name, value, model))

    def delete_document(self, doctype: str, name: Optional[str] = None) -> Any:
        """Delete a document."""
        return self._run(self._async_client.delete_document(doctype, name))

    def count_documents(
        self,
        doctype: str,
        filters: Optional[Filters] = None,
        cache: bool = False,
        debug: bool = False,
    ) -> int:
        """Count documents matching the filters."""
        return self._run(self._async_client.count_documents(doctype, filters, cache, debug))

    def fetch_last_document(
        self,
        doctype: str,
        args: Optional[Union[GetLastDocArgs, Mapping[str, Any]]] = None,
        model: Optional[type[M]] = None,
    ) -> Union[dict[str, Any], M]:
        """Get the most recently created document of a doctype."""
        return self._run(self._async_client.fetch_last_document(doctype, args, model))
