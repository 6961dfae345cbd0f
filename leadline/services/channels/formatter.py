"""WhatsApp Cloud API payload rendering."""

import re
from typing import Any

from pydantic import BaseModel

from leadline.core.exceptions import ValidationError
from leadline.models import ResponseShape

MAX_BUTTONS = 3
MAX_BUTTON_LABEL = 20

# Applied in order; the channel shows markdown literally
_MARKUP_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"```[\s\S]*?```"), ""),                   # code blocks
    (re.compile(r"`([^`]+)`"), r"\1"),                     # inline code
    (re.compile(r"`"), ""),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),         # links
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),         # headers
    (re.compile(r"\*{1,3}([^*]+)\*{1,3}"), r"\1"),         # bold / italic
    (re.compile(r"\*"), ""),
    (re.compile(r"_{1,3}([^_]+)_{1,3}"), r"\1"),
    (re.compile(r"_"), ""),
    (re.compile(r"~+"), ""),                               # strikethrough
    (re.compile(r"[ \t]+"), " "),
    (re.compile(r" ?\n ?"), "\n"),
    (re.compile(r"\n{3,}"), "\n\n"),
]


def _sanitize_once(text: str) -> str:
    for pattern, replacement in _MARKUP_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def sanitize_markup(text: str | None) -> str:
    """Strip markdown markup the channel would render literally.

    Runs the rules until nothing changes, so sanitizing twice is the same
    as sanitizing once.
    """
    current = text or ""
    while True:
        cleaned = _sanitize_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned


def slugify(label: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", label.lower()).strip("_")


class ActionButton(BaseModel):
    """A quick-reply button; id is derived from the label when omitted."""

    label: str
    id: str | None = None


class ListItem(BaseModel):
    id: str | None = None
    title: str
    description: str | None = None


class CatalogItem(BaseModel):
    id: str
    title: str | None = None


def _as_buttons(actions: list[ActionButton | str]) -> list[ActionButton]:
    return [a if isinstance(a, ActionButton) else ActionButton(label=a) for a in actions]


def _envelope(body: dict[str, Any], meta: dict[str, Any] | None) -> dict[str, Any]:
    payload = {"messaging_product": "whatsapp", **body}
    if meta:
        payload["metadata"] = meta
    return payload


def format_text(text: str, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    return _envelope({"type": "text", "text": {"body": sanitize_markup(text)}}, meta)


def format_buttons(
    text: str,
    actions: list[ActionButton | str],
    meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Interactive envelope with up to three reply buttons."""
    buttons = []
    for index, action in enumerate(_as_buttons(actions)[:MAX_BUTTONS]):
        label = sanitize_markup(action.label)
        buttons.append({
            "type": "reply",
            "reply": {
                "id": action.id or f"btn_{index + 1}_{slugify(label)}",
                "title": label[:MAX_BUTTON_LABEL],
            },
        })

    return _envelope(
        {
            "recipient_type": "individual",
            "type": "interactive",
            "interactive": {
                "type": "button",
                "body": {"text": sanitize_markup(text)},
                "action": {"buttons": buttons},
            },
        },
        meta,
    )


def format_carousel(
    text: str,
    items: list[CatalogItem],
    catalog_id: str,
    section_title: str = "Featured",
    meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Catalog (product list) envelope."""
    return _envelope(
        {
            "recipient_type": "individual",
            "type": "interactive",
            "interactive": {
                "type": "product_list",
                "header": {"type": "text", "text": sanitize_markup(text)},
                "body": {"text": sanitize_markup(text)},
                "action": {
                    "catalog_id": catalog_id,
                    "sections": [
                        {
                            "title": section_title,
                            "product_items": [{"product_retailer_id": item.id} for item in items],
                        }
                    ],
                },
            },
        },
        meta,
    )


def format_list(
    text: str,
    items: list[ListItem],
    button_text: str = "Select Option",
    section_title: str = "Options",
    meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Single-select list envelope."""
    rows = []
    for index, item in enumerate(items):
        row = {"id": item.id or f"item_{index + 1}", "title": sanitize_markup(item.title)}
        if item.description:
            row["description"] = sanitize_markup(item.description)
        rows.append(row)

    return _envelope(
        {
            "recipient_type": "individual",
            "type": "interactive",
            "interactive": {
                "type": "list",
                "body": {"text": sanitize_markup(text)},
                "action": {
                    "button": button_text,
                    "sections": [{"title": section_title, "rows": rows}],
                },
            },
        },
        meta,
    )


def format_template(
    name: str,
    parameters: list[str] | None = None,
    language: str = "en",
    meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Named template with positional body parameters."""
    template: dict[str, Any] = {"name": name, "language": {"code": language}}
    if parameters:
        template["components"] = [
            {
                "type": "body",
                "parameters": [{"type": "text", "text": sanitize_markup(p)} for p in parameters],
            }
        ]
    return _envelope({"type": "template", "template": template}, meta)


def format_payload(
    text: str,
    shape: ResponseShape = ResponseShape.TEXT_ONLY,
    actions: list[ActionButton | str] | None = None,
    meta: dict[str, Any] | None = None,
    *,
    items: list[dict[str, Any]] | None = None,
    catalog_id: str = "",
    template_name: str | None = None,
    template_parameters: list[str] | None = None,
    language: str = "en",
) -> dict[str, Any]:
    """Render a reply into the envelope for its shape.

    Args:
        text: Visible reply text (sanitized here)
        shape: Wire shape to render
        actions: Button labels or ActionButtons for the buttons shape
        meta: Extra data attached under "metadata"; stripped before sending
        items: Entries for the carousel and list shapes
        catalog_id: Catalog for the carousel shape
        template_name: Template for the template shape
        template_parameters: Positional template parameters
        language: Template language code

    Returns:
        Payload dict without the recipient

    Raises:
        ValidationError: If the shape's required inputs are missing
    """
    if shape == ResponseShape.TEXT_WITH_BUTTONS:
        if not actions:
            return format_text(text, meta)
        return format_buttons(text, actions, meta)

    if shape == ResponseShape.CAROUSEL:
        if not catalog_id:
            raise ValidationError("A catalog id is required for carousel payloads")
        return format_carousel(text, [CatalogItem(**item) for item in items or []], catalog_id, meta=meta)

    if shape == ResponseShape.LIST:
        return format_list(text, [ListItem(**item) for item in items or []], meta=meta)

    if shape == ResponseShape.TEMPLATE:
        if not template_name:
            raise ValidationError("A template name is required for template payloads")
        return format_template(template_name, template_parameters, language, meta)

    return format_text(text, meta)
