# urlcompare/core/formatting.py
import json
import re
import logging
from html import escape
from typing import Any

from urlcompare.exceptions import FormatError


"""
format_payload() detects what a payload is → calls:
    structured value → json.dumps(indent=2)

    JSON text → parse + json.dumps(indent=2)

    markup text → format_xml() line indentation

    anything else → escaped as-is
Every branch ends in HTML escaping, and no branch raises.
"""


logger = logging.getLogger(__name__)

PADDING = "  "

_TAG_BOUNDARY = re.compile(r"(>)(<)(/*)")
_TEXT_THEN_CLOSE = re.compile(r".+</\w[^>]*>$")
_CLOSE_TAG = re.compile(r"^</\w")
_OPEN_TAG = re.compile(r"^<\w([^>]*[^/])?>.*$")


def escape_text(text: str) -> str:
    # payloads only ever land inside element content, so quotes stay as they are
    if not text:
        return ""
    return escape(text, quote=False)


def _reject_constant(name: str):
    raise FormatError(f"Non-standard JSON constant: {name}")


def parse_json_text(text: str) -> Any:
    """Strict JSON parse; NaN and Infinity are not JSON."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise FormatError(str(e)) from e


def format_xml(xml: str) -> str:
    """
    Best-effort markup indentation. Splits at every '><' boundary and indents
    each line by the depth of the still-open elements. Not a parser: malformed
    markup just comes out oddly indented.
    """
    formatted = []
    pad = 0

    xml = _TAG_BOUNDARY.sub(r"\1\n\2\3", xml)
    for line in xml.split("\n"):
        indent = 0
        if _TEXT_THEN_CLOSE.search(line):
            indent = 0
        elif _CLOSE_TAG.match(line):
            if pad != 0:
                pad -= 1
        elif _OPEN_TAG.match(line):
            indent = 1

        formatted.append(PADDING * pad + line)
        pad += indent

    return "\n".join(formatted).strip()


def format_payload(value: Any) -> str:
    if value is None or value == "":
        return ""

    if not isinstance(value, str):
        try:
            return escape_text(json.dumps(value, indent=2, ensure_ascii=False))
        except (TypeError, ValueError):
            return escape_text(str(value))

    try:
        parsed = parse_json_text(value)
        return escape_text(json.dumps(parsed, indent=2, ensure_ascii=False))
    except FormatError:
        pass

    if value.strip().startswith("<"):
        try:
            return escape_text(format_xml(value))
        except Exception as e:
            logger.debug(f"Markup formatting failed, showing raw payload: {e}")
            return escape_text(value)

    return escape_text(value)
