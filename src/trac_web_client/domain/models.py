from __future__ import annotations

from datetime import datetime
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

TICKET_PROPS: Final[tuple[str, ...]] = (
    "id",
    "summary",
    "type",
    "status",
    "priority",
    "severity",
    "resolution",
    "owner",
    "reporter",
    "cc",
    "description",
    "keywords",
    "component",
    "milestone",
    "version",
    "time",
    "changetime",
)

# Server-assigned properties never sent by the client.
_SERVER_ONLY: Final[frozenset[str]] = frozenset({"id", "time", "changetime"})

CREATE_PROPS: Final[tuple[str, ...]] = tuple(
    p for p in TICKET_PROPS if p not in _SERVER_ONLY and p != "resolution"
)
UPDATE_PROPS: Final[tuple[str, ...]] = tuple(p for p in TICKET_PROPS if p not in _SERVER_ONLY)

# Others may be defined by the remote workflow; these are the stock ones.
BASIC_STATUSES: Final[tuple[str, ...]] = ("new", "accepted", "assigned", "reopened", "closed")


class _TracModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class TicketState(_TracModel):
    """Flat snapshot of a ticket as rendered by Trac."""

    id: str
    summary: str | None = None
    type: str | None = None
    status: str | None = None
    priority: str | None = None
    severity: str | None = None
    resolution: str | None = None
    owner: str | None = None
    reporter: str | None = None
    cc: str | None = None
    description: str | None = None
    keywords: str | None = None
    component: str | None = None
    milestone: str | None = None
    version: str | None = None
    time: str | None = None
    changetime: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> TicketState:
        values = {
            key: (str(value) if value is not None else None)
            for key, value in record.items()
            if key in TICKET_PROPS
        }
        return cls.model_validate(values)

    def get(self, name: str) -> str | None:
        if name not in TICKET_PROPS:
            raise KeyError(name)
        value = getattr(self, name)
        return value if isinstance(value, str) else None

    def as_dict(self) -> dict[str, str | None]:
        return {name: self.get(name) for name in TICKET_PROPS}


class Attachment(_TracModel):
    ticket: int
    filename: str | None = None
    description: str | None = None
    url: str | None = None
    author: str | None = None
    date: datetime | None = None
    size: int | None = None


class PropChange(_TracModel):
    property: str
    old_value: str | None = None
    new_value: str | None = None


class HistoryEntry(_TracModel):
    author: str | None = None
    date: datetime | None = None
    category: str | None = None
    content: str = ""
    prop_changes: dict[str, PropChange] = Field(default_factory=dict)
