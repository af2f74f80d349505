"""Create, read and update tickets on a remote Trac through its web forms.

Operations return None (or False) on failure, as the web UI gives no richer
contract; `Ticket.last_error` tells the failure kinds apart.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Literal

import structlog

from trac_web_client.adapters.trac.errors import TracClientError
from trac_web_client.adapters.trac.forms import HtmlForm
from trac_web_client.adapters.trac.pages import AttachmentFragmentParser, AttachmentListParser
from trac_web_client.app.failures import failure_from_exception
from trac_web_client.app.history import TicketHistory
from trac_web_client.app.search import TicketSearch
from trac_web_client.domain.auto_status import apply_auto_status
from trac_web_client.domain.error_messages import ErrorCodes, ErrorMessages, format_http_error
from trac_web_client.domain.errors import TicketFailure, TicketValidationError
from trac_web_client.domain.metadata import TicketMetadata
from trac_web_client.domain.models import (
    BASIC_STATUSES,
    CREATE_PROPS,
    TICKET_PROPS,
    UPDATE_PROPS,
    Attachment,
    HistoryEntry,
    TicketState,
)
from trac_web_client.domain.ticket_id import coerce_ticket_id, record_ticket_id, ticket_id_from_title
from trac_web_client.domain.time_utils import parse_trac_datetime
from trac_web_client.domain.validation import (
    PropertyRule,
    build_validation_rules,
    validate_properties,
)

if TYPE_CHECKING:
    from trac_web_client.adapters.trac.connection import TracConnection

log = structlog.get_logger(__name__)

Mode = Literal["create", "update"]


def _state_property(name: str) -> property:
    def getter(self: Ticket) -> str | None:
        return self.get(name)

    getter.__name__ = name
    return property(getter, doc=f"The ticket's {name!r} value, or None when not loaded.")


class Ticket:
    """A single ticket on a remote Trac instance.

        ticket = Ticket(connection)
        ticket.load(1)
        print(ticket.summary)
    """

    basic_statuses: ClassVar[tuple[str, ...]] = BASIC_STATUSES
    valid_props: ClassVar[tuple[str, ...]] = TICKET_PROPS
    valid_create_props: ClassVar[tuple[str, ...]] = CREATE_PROPS
    valid_update_props: ClassVar[tuple[str, ...]] = UPDATE_PROPS

    summary = _state_property("summary")
    type = _state_property("type")
    status = _state_property("status")
    priority = _state_property("priority")
    severity = _state_property("severity")
    resolution = _state_property("resolution")
    owner = _state_property("owner")
    reporter = _state_property("reporter")
    cc = _state_property("cc")
    description = _state_property("description")
    keywords = _state_property("keywords")
    component = _state_property("component")
    milestone = _state_property("milestone")
    version = _state_property("version")
    time = _state_property("time")
    changetime = _state_property("changetime")

    def __init__(self, connection: TracConnection) -> None:
        self.connection = connection
        self._state: TicketState | None = None
        self._metadata = TicketMetadata()
        self._attachments: list[Attachment] = []
        self.last_error: TicketFailure | None = None

    def __repr__(self) -> str:
        return f"<Ticket id={self.id!r} summary={self.summary!r}>"

    # Accessors

    @property
    def state(self) -> TicketState | None:
        return self._state

    @property
    def id(self) -> int | None:
        if self._state is None:
            return None
        return coerce_ticket_id(self._state.id)

    def get(self, name: str) -> str | None:
        """Property-name-indexed access; unknown names raise KeyError."""
        if name not in TICKET_PROPS:
            raise KeyError(name)
        if self._state is None:
            return None
        return self._state.get(name)

    @property
    def created(self) -> datetime | None:
        return parse_trac_datetime(self.time)

    @property
    def last_modified(self) -> datetime | None:
        return parse_trac_datetime(self.changetime)

    @property
    def valid_milestones(self) -> tuple[str, ...]:
        self.load_create_metadata()
        return self._metadata.milestones

    @property
    def valid_types(self) -> tuple[str, ...]:
        self.load_create_metadata()
        return self._metadata.types

    @property
    def valid_components(self) -> tuple[str, ...]:
        self.load_create_metadata()
        return self._metadata.components

    @property
    def valid_priorities(self) -> tuple[str, ...]:
        self.load_create_metadata()
        return self._metadata.priorities

    @property
    def valid_severities(self) -> tuple[str, ...]:
        """May stay empty: not every Trac instance has a severity field."""
        self.load_create_metadata()
        return self._metadata.severities

    @property
    def valid_resolutions(self) -> tuple[str, ...]:
        """Only available once a ticket is loaded."""
        self.load_update_metadata()
        return self._metadata.resolutions

    # Loading

    def load(self, ticket_id: int | str) -> int | None:
        """Load the ticket with `ticket_id`; returns the id, or None on failure."""
        self.last_error = None
        wanted = coerce_ticket_id(ticket_id)
        if wanted is None:
            return self._fail(ErrorCodes.NOT_FOUND, ErrorMessages.TICKET_NOT_FOUND.format(ticket_id=ticket_id))

        search = TicketSearch(self.connection, limit=1)
        records = search.query(objects=False, id=wanted)
        if search.last_error is not None:
            self.last_error = search.last_error
            return None
        if not records:
            return self._fail(ErrorCodes.NOT_FOUND, ErrorMessages.TICKET_NOT_FOUND.format(ticket_id=wanted))
        return self.load_from_mapping(records[0])

    def load_from_mapping(self, record: dict[str, Any], skip_metadata: bool = False) -> int | None:
        """Populate from an already fetched record, optionally skipping metadata loading.

        A record without an id leaves the ticket untouched. The id of a loaded
        ticket never changes; records for another ticket are refused.
        """
        ticket_id = record_ticket_id(record)
        if ticket_id is None:
            return self._fail(ErrorCodes.VALIDATION, ErrorMessages.TICKET_ID_MISSING)
        if self.id is not None and ticket_id != self.id:
            return self._fail(
                ErrorCodes.VALIDATION,
                ErrorMessages.TICKET_ID_MISMATCH.format(ticket_id=self.id, other_id=ticket_id),
            )

        self._state = TicketState.from_record(record)
        if not skip_metadata:
            self.load_update_metadata()
        return ticket_id

    # Metadata

    def load_create_metadata(self) -> bool:
        """Fetch the permitted values offered by the new-ticket form (once)."""
        if self._metadata.create_loaded:
            return True
        try:
            form, _ = self._new_ticket_form()
        except TracClientError as exc:
            self._fail_from_exception(exc, "load_create_metadata")
            return False
        self._metadata.absorb_create_form(form)
        return True

    def load_update_metadata(self) -> bool:
        """Fetch the permitted resolutions from this ticket's page (once)."""
        if self._metadata.update_loaded:
            return True
        if self.id is None:
            self._fail(ErrorCodes.NOT_FOUND, ErrorMessages.TICKET_NOT_LOADED)
            return False
        try:
            form, _ = self._update_ticket_form()
        except TracClientError as exc:
            self._fail_from_exception(exc, "load_update_metadata")
            return False
        self._metadata.absorb_update_form(form)
        return True

    def validation_rules(self, mode: Mode, props: tuple[str, ...] | None = None) -> dict[str, PropertyRule] | None:
        """Rules built from the live permitted-value sets; None when they cannot be loaded."""
        mode_name = mode.lower()
        if mode_name not in ("create", "update"):
            raise ValueError(f"mode must be 'create' or 'update', not {mode!r}")
        if not self.load_create_metadata():
            return None
        if mode_name == "update" and not self.load_update_metadata():
            return None
        if props is None:
            props = CREATE_PROPS if mode_name == "create" else UPDATE_PROPS
        return build_validation_rules(self._metadata, props)

    # Operations

    def create(self, *, strict: bool = False, **props: Any) -> int | None:
        """Create a ticket with `props` and load it; returns the new id or None.

        With `strict`, invalid values raise TicketValidationError instead.
        """
        self.last_error = None
        if self.id is not None:
            return self._fail(
                ErrorCodes.VALIDATION, ErrorMessages.TICKET_ALREADY_LOADED.format(ticket_id=self.id)
            )

        rules = self.validation_rules("create")
        if rules is None:
            return None
        try:
            values = validate_properties(props, rules)
        except TicketValidationError as exc:
            self._fail(ErrorCodes.VALIDATION, str(exc))
            if strict:
                raise
            return None

        fields: dict[str, str | None] = {f"field_{name}": value for name, value in values.items()}
        fields["submit"] = "1"
        try:
            _, form_number = self._new_ticket_form()
            response = self.connection.submit_form(form_number, fields)
        except TracClientError as exc:
            return self._fail_from_exception(exc, "create")

        if self.connection.warn_on_error(response):
            return self._fail(ErrorCodes.REJECTED, ErrorMessages.SUBMISSION_REJECTED)

        ticket_id = ticket_id_from_title(response.title)
        if ticket_id is None:
            return self._fail(ErrorCodes.REJECTED, ErrorMessages.NO_TICKET_ID)

        log.info("ticket.created", ticket_id=ticket_id)
        # The id is provisional until the reload below also succeeds.
        if self.load(ticket_id) is None:
            log.warning("ticket.reload_after_create_failed", ticket_id=ticket_id)
        return ticket_id

    def update(
        self,
        *,
        comment: str | None = None,
        no_auto_status: bool = False,
        strict: bool = False,
        **props: Any,
    ) -> int | None:
        """Update the ticket; returns its id or None.

        Unless `no_auto_status` is set, a missing status is filled in the way
        Trac's default workflow would: a resolution closes the ticket, a new
        owner assigns it (or accepts it when the owner is the logged-in user).
        """
        self.last_error = None
        ticket_id = self.id
        if ticket_id is None:
            return self._fail(ErrorCodes.NOT_FOUND, ErrorMessages.TICKET_NOT_LOADED)

        rules = self.validation_rules("update")
        if rules is None:
            return None
        try:
            values = validate_properties(props, rules)
        except TicketValidationError as exc:
            self._fail(ErrorCodes.VALIDATION, str(exc))
            if strict:
                raise
            return None

        if not no_auto_status:
            values = apply_auto_status(values, self.connection.user)

        fields: dict[str, str | None] = {f"field_{name}": value for name, value in values.items()}
        fields["comment"] = comment
        fields["submit"] = "1"
        try:
            _, form_number = self._update_ticket_form()
            response = self.connection.submit_form(form_number, fields)
        except TracClientError as exc:
            return self._fail_from_exception(exc, "update")

        if not response.is_success:
            return self._fail(ErrorCodes.REJECTED, format_http_error(response.status_code))

        log.info("ticket.updated", ticket_id=ticket_id, props=sorted(values))
        return self.load(ticket_id)

    def comment(self, text: str) -> int | None:
        """Add a comment; returns the ticket id or None."""
        return self.update(comment=text)

    # Attachments

    def attachments(self) -> list[Attachment]:
        """Attachments of this ticket, rebuilt from the attachment index on every call.

        When the index cannot be fetched the previously listed attachments are
        returned and `last_error` is set.
        """
        if self.id is None:
            return []
        self._relist_attachments(self.id)
        return list(self._attachments)

    def attach(self, file: str | Path, description: str | None = None) -> Attachment | None:
        """Upload `file`; returns the new attachment (the last one listed) or None.

        Any failed step gives None with `last_error` set, relisting included.
        """
        self.last_error = None
        ticket_id = self.id
        if ticket_id is None:
            return self._fail(ErrorCodes.NOT_FOUND, ErrorMessages.TICKET_NOT_LOADED)

        path = Path(file)
        try:
            payload = path.read_bytes()
        except OSError as exc:
            return self._fail(ErrorCodes.VALIDATION, f"Cannot read {path}: {exc.strerror or exc}")

        try:
            self.connection.ensure_logged_in()
            _, form_number = self.connection.discover_form(
                f"/attachment/ticket/{ticket_id}/?action=new", "attachment"
            )
            response = self.connection.submit_form(
                form_number,
                {"description": description or ""},
                files={"attachment": (path.name, payload)},
            )
        except TracClientError as exc:
            return self._fail_from_exception(exc, "attach")

        if self.connection.warn_on_error(response):
            return self._fail(ErrorCodes.REJECTED, ErrorMessages.SUBMISSION_REJECTED)

        log.info("ticket.attached", ticket_id=ticket_id, filename=path.name, size=len(payload))
        # Relies on Trac listing attachments in upload order.
        if not self._relist_attachments(ticket_id):
            return None
        if not self._attachments:
            return self._fail(ErrorCodes.REJECTED, ErrorMessages.ATTACHMENT_NOT_LISTED)
        return self._attachments[-1]

    def attachment_content(self, attachment: Attachment) -> bytes | None:
        if not attachment.url:
            return None
        try:
            return self.connection.fetch_bytes(attachment.url)
        except TracClientError as exc:
            return self._fail_from_exception(exc, "attachment_content")

    def _relist_attachments(self, ticket_id: int) -> bool:
        try:
            self.connection.ensure_logged_in()
            content = self.connection.fetch(f"/attachment/ticket/{ticket_id}/")
        except TracClientError as exc:
            self._fail_from_exception(exc, "attachments")
            return False

        parser = AttachmentFragmentParser(ticket_id)
        self._attachments = [parser.parse(fragment) for fragment in AttachmentListParser().parse(content)]
        return True

    # History

    def history(self) -> TicketHistory:
        history = TicketHistory(self.connection)
        if self.id is not None:
            history.load(self.id)
        return history

    def comments(self) -> list[HistoryEntry]:
        """History entries carrying text, including described attachments."""
        return [entry for entry in self.history().entries if entry.content.strip()]

    # Internals

    def _new_ticket_form(self) -> tuple[HtmlForm, int]:
        self.connection.ensure_logged_in()
        return self.connection.discover_form("/newticket", "field_reporter")

    def _update_ticket_form(self) -> tuple[HtmlForm, int]:
        self.connection.ensure_logged_in()
        return self.connection.discover_form(f"/ticket/{self.id}", "field_reporter")

    def _fail(self, code: str, message: str) -> None:
        self.last_error = TicketFailure(code=code, message=message)
        log.warning("ticket.operation_failed", code=code, message=message, ticket_id=self.id)
        return None

    def _fail_from_exception(self, exc: TracClientError, operation: str) -> None:
        self.last_error = failure_from_exception(exc)
        log.warning(
            "ticket.operation_failed",
            operation=operation,
            code=self.last_error.code,
            message=self.last_error.message,
            ticket_id=self.id,
        )
        return None
