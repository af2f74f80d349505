from __future__ import annotations

from datetime import UTC, datetime

import httpx
import pytest
import respx

from test.support import fake_trac, trac_pages
from trac_web_client.app.ticket import Ticket
from trac_web_client.domain.error_messages import ErrorCodes
from trac_web_client.domain.models import TICKET_PROPS


def test_load_reads_query_export_and_update_metadata() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL) as trac:
        query = fake_trac.mount_loaded_ticket(trac, 42, owner="bob", milestone="milestone1")

        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            assert ticket.load(42) == 42

            assert ticket.id == 42
            assert ticket.summary == "Crash on start"
            assert ticket.owner == "bob"
            assert ticket.milestone == "milestone1"
            assert ticket.get("status") == "new"
            assert ticket.created == datetime(2024, 3, 1, 10, 15, tzinfo=UTC)
            assert ticket.last_modified == datetime(2024, 3, 2, 8, 0, tzinfo=UTC)
            assert ticket.valid_resolutions == ("fixed", "invalid", "wontfix", "duplicate", "worksforme")
            assert ticket.last_error is None

        params = query.calls.last.request.url.params
        assert params["id"] == "42"
        assert params["format"] == "csv"
        assert params["max"] == "1"
        assert params.get_list("col") == list(TICKET_PROPS)


def test_load_accepts_hash_prefixed_ids() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL) as trac:
        fake_trac.mount_loaded_ticket(trac, 42)

        with fake_trac.make_connection() as connection:
            assert Ticket(connection).load("#42") == 42


def test_load_unknown_ticket_reports_not_found() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL) as trac:
        fake_trac.mount_login(trac)
        fake_trac.mount_query(trac, [])

        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            assert ticket.load(7) is None

    assert ticket.id is None
    assert ticket.last_error is not None
    assert ticket.last_error.code == ErrorCodes.NOT_FOUND
    assert ticket.last_error.message == "Ticket 7 not found"


def test_load_rejects_malformed_id_without_asking_trac() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL):
        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            assert ticket.load("not-a-number") is None
            assert ticket.load(0) is None

    assert ticket.last_error is not None
    assert ticket.last_error.code == ErrorCodes.NOT_FOUND


def test_load_with_rejected_credentials_reports_auth_failure() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL) as trac:
        trac.get("/login").mock(return_value=httpx.Response(401, text="Authentication required"))

        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            assert ticket.load(42) is None

    assert ticket.last_error is not None
    assert ticket.last_error.code == ErrorCodes.AUTH


def test_load_from_mapping_without_id_leaves_ticket_untouched() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL) as trac:
        fake_trac.mount_loaded_ticket(trac, 42)

        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            ticket.load(42)

            assert ticket.load_from_mapping({"summary": "Replaced"}) is None
            assert ticket.load_from_mapping({"id": "", "summary": "Replaced"}) is None

    assert ticket.id == 42
    assert ticket.summary == "Crash on start"
    assert ticket.last_error is not None
    assert ticket.last_error.code == ErrorCodes.VALIDATION


def test_load_from_mapping_refuses_another_tickets_record() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL) as trac:
        fake_trac.mount_loaded_ticket(trac, 42)

        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            ticket.load(42)

            refused = ticket.load_from_mapping(trac_pages.ticket_record(43, summary="Other"), skip_metadata=True)
            refreshed = ticket.load_from_mapping(trac_pages.ticket_record(42, summary="Renamed"), skip_metadata=True)

    assert refused is None
    assert refreshed == 42
    assert ticket.summary == "Renamed"


def test_create_metadata_is_fetched_once_and_cached() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL) as trac:
        fake_trac.mount_login(trac)
        form = fake_trac.mount_new_ticket_form(trac)

        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            assert ticket.valid_types == ("defect", "enhancement", "task")
            assert ticket.valid_priorities == ("blocker", "critical", "major", "minor", "trivial")
            assert ticket.valid_milestones == ("", "milestone1", "milestone2")
            assert ticket.valid_components == ("component1", "component2")
            assert ticket.valid_severities == ()

        assert form.call_count == 1


def test_resolutions_need_a_loaded_ticket() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL):
        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            assert ticket.valid_resolutions == ()

    assert ticket.last_error is not None
    assert ticket.last_error.code == ErrorCodes.NOT_FOUND


def test_unknown_property_name_raises_key_error() -> None:
    with fake_trac.make_connection() as connection:
        ticket = Ticket(connection)
        assert ticket.get("summary") is None
        with pytest.raises(KeyError):
            ticket.get("votes")


def test_create_metadata_is_retried_after_the_form_was_missing() -> None:
    with respx.mock(base_url=trac_pages.BASE_URL) as trac:
        fake_trac.mount_login(trac)
        form = trac.get("/newticket").mock(
            side_effect=[
                httpx.Response(200, html=trac_pages.error_page("Trac is being upgraded")),
                httpx.Response(200, html=trac_pages.new_ticket_page()),
            ]
        )

        with fake_trac.make_connection() as connection:
            ticket = Ticket(connection)
            assert ticket.load_create_metadata() is False
            assert ticket.last_error is not None
            assert ticket.last_error.code == ErrorCodes.FORM_NOT_FOUND

            assert ticket.load_create_metadata() is True
            assert ticket.valid_types == ("defect", "enhancement", "task")

        assert form.call_count == 2
