"""Permitted-value sets for enumerated ticket properties.

Trac deployments configure their own ticket types, components, milestones and
so on. The only way to learn them through the web UI is to read the options
of the ticket forms, so they are cached per ticket object once loaded.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from trac_web_client.adapters.trac.forms import HtmlForm

# Singular property name -> metadata cache key.
METADATA_KEYS: Final[dict[str, str]] = {
    "milestone": "milestones",
    "type": "types",
    "component": "components",
    "priority": "priorities",
    "severity": "severities",
    "resolution": "resolutions",
}

CREATE_FORM_FIELDS: Final[dict[str, str]] = {
    "milestones": "field_milestone",
    "types": "field_type",
    "components": "field_component",
    "priorities": "field_priority",
    "severities": "field_severity",
}

UPDATE_FORM_FIELDS: Final[dict[str, str]] = {
    "resolutions": "action_resolve_resolve_resolution",
}


@dataclass
class TicketMetadata:
    milestones: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    components: tuple[str, ...] = ()
    priorities: tuple[str, ...] = ()
    severities: tuple[str, ...] = ()
    resolutions: tuple[str, ...] = ()
    create_loaded: bool = False
    update_loaded: bool = False

    def permitted_values(self, prop: str) -> tuple[str, ...] | None:
        """Cached values for `prop`, or None when the property is not enumerated."""
        key = METADATA_KEYS.get(prop)
        if key is None:
            return None
        values: tuple[str, ...] = getattr(self, key)
        return values

    def absorb_create_form(self, form: HtmlForm) -> None:
        # Inputs missing from the form leave their set empty (unconstrained).
        for key, input_name in CREATE_FORM_FIELDS.items():
            found = form.find_input(input_name)
            if found is not None:
                setattr(self, key, tuple(found.possible_values()))
        self.create_loaded = True

    def absorb_update_form(self, form: HtmlForm) -> None:
        for key, input_name in UPDATE_FORM_FIELDS.items():
            found = form.find_input(input_name)
            if found is not None:
                setattr(self, key, tuple(found.possible_values()))
        self.update_loaded = True
