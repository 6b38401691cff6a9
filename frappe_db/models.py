"""
Data models for the Frappe DB client.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# (field, operator, value), e.g. ("status", "=", "Open")
Filter = Union[tuple[str, str, Any], list[Any]]

Filters = Union[list[Any], dict[str, Any]]


class SortOrder(str, Enum):
    """Sort direction for list queries."""

    ASC = "asc"
    DESC = "desc"


class OrderBy(BaseModel):
    """Ordering of a list query."""

    field: str
    order: SortOrder = SortOrder.ASC

    def as_param(self) -> str:
        """Render as the ``order_by`` query value, e.g. ``"creation desc"``."""
        return f"{self.field} {self.order.value}"


class GetLastDocArgs(BaseModel):
    """Query arguments accepted when fetching the most recent document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    filters: Optional[Filters] = None
    or_filters: Optional[Filters] = None
    order_by: Optional[OrderBy] = None
    group_by: Optional[str] = None
    limit_start: Optional[int] = None
    as_dict: bool = True


class GetDocListArgs(GetLastDocArgs):
    """Query arguments for listing documents."""

    fields: Optional[list[str]] = None
    limit: Optional[int] = None


class FrappeDoc(BaseModel):
    """Standard fields present on every Frappe document.

    Extra fields are kept, so doctype-specific models can subclass this or
    callers can read them off ``model_extra``.
    """

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    owner: Optional[str] = None
    creation: Optional[datetime] = None
    modified: Optional[datetime] = None
    modified_by: Optional[str] = None
    docstatus: Optional[int] = None
    idx: Optional[int] = None
    parent: Optional[str] = None
    parentfield: Optional[str] = None
    parenttype: Optional[str] = None
    doctype: Optional[str] = None
