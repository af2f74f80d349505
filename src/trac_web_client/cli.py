"""Operational CLI for trac-web-client.

Config commands (validate-config, dump-config, show-deprecated) never touch
the network; show-ticket and list-attachments read one ticket and print it as
JSON on stdout. Every command returns 0 on success and 1 on failure.
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Sequence
from typing import Any

from trac_web_client.adapters.trac.connection import TracConnection
from trac_web_client.app.ticket import Ticket
from trac_web_client.config.env_aliases import deprecated_names_in_use
from trac_web_client.config.load import load_settings
from trac_web_client.config.redact import redact_settings_dict
from trac_web_client.runtime import open_connection


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def cmd_validate_config(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(config_path=args.config)
    except Exception as e:
        print(f"✗ Configuration is invalid: {e}", file=sys.stderr)
        return 1
    print("✓ Configuration is valid")
    print(f"  - Trac URL: {settings.trac.base_url}")
    print(f"  - Trac user: {settings.trac.user}")
    print(f"  - Log level: {settings.observability.log_level}")
    return 0


def cmd_dump_config(args: argparse.Namespace) -> int:
    """Effective configuration as JSON, password and tokens redacted."""
    try:
        settings = load_settings(config_path=args.config)
    except Exception as e:
        print(f"✗ Failed to load configuration: {e}", file=sys.stderr)
        return 1
    _print_json(redact_settings_dict(settings.model_dump(mode="json")))
    return 0


def cmd_show_deprecated(args: argparse.Namespace) -> int:
    in_use = deprecated_names_in_use(os.environ)
    if not in_use:
        print("No deprecated environment variables in use.")
        return 0

    print("Deprecated environment variables detected:")
    for old, new, shadowed in in_use:
        note = f"ignored, {new} is set" if shadowed else f"rename to {new}"
        print(f"  {old}: {note}")
    return 0


def _load_ticket(connection: TracConnection, ticket_id: int) -> Ticket | None:
    ticket = Ticket(connection)
    if ticket.load(ticket_id) is not None:
        return ticket
    failure = ticket.last_error
    reason = f"{failure.code}: {failure.message}" if failure else "unknown error"
    print(f"✗ Could not load ticket {ticket_id} ({reason})", file=sys.stderr)
    return None


def cmd_show_ticket(args: argparse.Namespace) -> int:
    try:
        with open_connection(config_path=args.config) as connection:
            ticket = _load_ticket(connection, args.ticket_id)
            if ticket is None or ticket.state is None:
                return 1
            record = ticket.state.as_dict()
    except Exception as e:
        print(f"✗ Failed to read ticket: {e}", file=sys.stderr)
        return 1
    _print_json(record)
    return 0


def cmd_list_attachments(args: argparse.Namespace) -> int:
    try:
        with open_connection(config_path=args.config) as connection:
            ticket = _load_ticket(connection, args.ticket_id)
            if ticket is None:
                return 1
            items = [a.model_dump(mode="json") for a in ticket.attachments()]
    except Exception as e:
        print(f"✗ Failed to list attachments: {e}", file=sys.stderr)
        return 1
    _print_json({"ticket": args.ticket_id, "count": len(items), "items": items})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trac-web-client",
        description="Read and check Trac tickets through the Trac web UI",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: $CONFIG_PATH or config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "validate-config", help="Validate configuration and exit"
    ).set_defaults(func=cmd_validate_config)
    subparsers.add_parser(
        "dump-config", help="Dump configuration as JSON (secrets redacted)"
    ).set_defaults(func=cmd_dump_config)
    subparsers.add_parser(
        "show-deprecated", help="Show deprecated environment variables in use"
    ).set_defaults(func=cmd_show_deprecated)

    for name, help_text, func in (
        ("show-ticket", "Print a ticket as JSON", cmd_show_ticket),
        ("list-attachments", "Print a ticket's attachments as JSON", cmd_list_attachments),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("ticket_id", type=int, help="Ticket number")
        sub.set_defaults(func=func)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
