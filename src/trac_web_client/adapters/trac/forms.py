"""HTML form discovery for Trac pages.

Trac renders plain HTML forms (new ticket, ticket update, attachment upload).
This module turns a page into a list of `HtmlForm` objects that know their
inputs, the permitted values of enumerated inputs and the default values a
browser would submit.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Final

_TEXT_KINDS: Final[frozenset[str]] = frozenset({"text", "hidden", "password", "email", "search", "url"})
_NEVER_SUBMITTED: Final[frozenset[str]] = frozenset({"submit", "button", "image", "reset", "file"})


@dataclass
class FormInput:
    name: str
    kind: str
    value: str | None = None
    options: list[str] = field(default_factory=list)

    def possible_values(self) -> list[str]:
        """Values a browser could submit for this input, in document order."""
        if self.kind in {"select", "radio"}:
            return list(self.options)
        if self.kind == "checkbox":
            return [self.value or "on"]
        return [self.value] if self.value is not None else []


@dataclass
class HtmlForm:
    action: str | None = None
    method: str = "GET"
    inputs: list[FormInput] = field(default_factory=list)

    def find_input(self, name: str) -> FormInput | None:
        for item in self.inputs:
            if item.name == name:
                return item
        return None

    def defaults(self) -> dict[str, str]:
        """Field values submitted when the form is sent unchanged."""
        values: dict[str, str] = {}
        for item in self.inputs:
            if item.kind in _NEVER_SUBMITTED:
                continue
            if item.value is None:
                continue
            values.setdefault(item.name, item.value)
        return values


class _FormCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.forms: list[HtmlForm] = []
        self._form: HtmlForm | None = None
        self._select: FormInput | None = None
        self._select_has_selected = False
        self._option_value: str | None = None
        self._option_selected = False
        self._option_text: list[str] | None = None
        self._textarea: FormInput | None = None
        self._textarea_text: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag = tag.lower()
        attr = {k.lower(): (v if v is not None else "") for k, v in attrs}

        if tag == "form":
            self._form = HtmlForm(
                action=attr.get("action"),
                method=(attr.get("method") or "GET").upper(),
            )
            self.forms.append(self._form)
            return

        if self._form is None:
            return

        if tag == "input":
            self._handle_input(attr)
        elif tag == "select" and attr.get("name"):
            self._select = FormInput(name=attr["name"], kind="select")
            self._select_has_selected = False
            self._form.inputs.append(self._select)
        elif tag == "option" and self._select is not None:
            self._finish_option()
            self._option_value = attr.get("value")
            self._option_selected = "selected" in attr
            self._option_text = []
        elif tag == "textarea" and attr.get("name"):
            self._textarea = FormInput(name=attr["name"], kind="textarea")
            self._textarea_text = []
            self._form.inputs.append(self._textarea)

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag == "form":
            self._finish_select()
            self._form = None
        elif tag == "option":
            self._finish_option()
        elif tag == "select":
            self._finish_select()
        elif tag == "textarea" and self._textarea is not None:
            self._textarea.value = "".join(self._textarea_text)
            self._textarea = None

    def handle_data(self, data: str) -> None:
        if self._option_text is not None:
            self._option_text.append(data)
        if self._textarea is not None:
            self._textarea_text.append(data)

    def close(self) -> None:
        super().close()
        # Unterminated trailing elements still count.
        self._finish_select()

    def _handle_input(self, attr: dict[str, str]) -> None:
        assert self._form is not None
        name = attr.get("name")
        if not name:
            return
        kind = (attr.get("type") or "text").lower()

        if kind == "radio":
            existing = self._form.find_input(name)
            if existing is None or existing.kind != "radio":
                existing = FormInput(name=name, kind="radio")
                self._form.inputs.append(existing)
            option = attr.get("value", "on")
            existing.options.append(option)
            if "checked" in attr:
                existing.value = option
            return

        if kind == "checkbox":
            value = attr.get("value", "on")
            checked = "checked" in attr
            self._form.inputs.append(
                FormInput(name=name, kind="checkbox", value=value if checked else None)
            )
            return

        if kind in _TEXT_KINDS:
            self._form.inputs.append(FormInput(name=name, kind=kind, value=attr.get("value", "")))
            return

        self._form.inputs.append(FormInput(name=name, kind=kind, value=attr.get("value")))

    def _finish_option(self) -> None:
        if self._select is None or self._option_text is None:
            return
        if self._option_value is not None:
            value = self._option_value
        else:
            value = "".join(self._option_text).strip()
        self._select.options.append(value)
        if self._option_selected and not self._select_has_selected:
            self._select.value = value
            self._select_has_selected = True
        self._option_text = None
        self._option_value = None
        self._option_selected = False

    def _finish_select(self) -> None:
        if self._select is None:
            return
        self._finish_option()
        if self._select.value is None and self._select.options:
            self._select.value = self._select.options[0]
        self._select = None


def parse_forms(html: str) -> list[HtmlForm]:
    """Return every form on the page in document order."""
    collector = _FormCollector()
    collector.feed(html)
    collector.close()
    return collector.forms


def find_form_with_input(forms: list[HtmlForm], input_name: str) -> tuple[HtmlForm, int] | None:
    """First form holding `input_name`, with its 1-based ordinal on the page."""
    for index, form in enumerate(forms, start=1):
        if form.find_input(input_name) is not None:
            return form, index
    return None
