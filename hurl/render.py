"""
Prints a response: status line and headers, then the body, pretty printing
JSON objects.
"""

import json
import math
import re
import sys
from typing import List, Optional, TextIO

import structlog

from .client import Response
from .errors import from_json_error
from .session import Session, SessionStore
from .syntax import Highlighter

logger = structlog.get_logger(__name__)

_WORD_SPLIT = re.compile(r"[-_\s]+")


def title_case_header(name: str) -> str:
    """content-type -> Content-Type"""
    return "-".join(part[:1].upper() + part[1:].lower() for part in _WORD_SPLIT.split(name) if part)


def header_lines(response: Response) -> List[str]:
    lines = [f"{title_case_header(k)}: {v}" for k, v in response.headers
             if k.lower() != "content-length"]
    length = response.content_length
    if length is None:
        length = len(response.content)
    lines.append(f"Content-Length: {length}")
    return sorted(lines)


def header_block(response: Response) -> str:
    status = f"{response.http_version} {response.status_code} {response.reason}"
    return "\n".join([status] + header_lines(response))


def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def _parse_finite_float(literal):
    value = float(literal)
    if math.isinf(value):
        raise ValueError(f"number out of range: {literal}")
    return value


def parse_json_object(text: str) -> Optional[dict]:
    """Strict parse of a JSON object; None for anything else."""
    try:
        value = json.loads(text, parse_constant=_reject_constant, parse_float=_parse_finite_float)
    except (ValueError, RecursionError) as e:
        logger.debug("body_not_json", error=str(e))
        return None
    if not isinstance(value, dict):
        logger.debug("body_not_json_object", type=type(value).__name__)
        return None
    return value


def format_json(value: dict) -> str:
    try:
        return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise from_json_error(e) from e


def render_body(text: str, highlighter: Highlighter) -> str:
    value = parse_json_object(text)
    if value is None:
        return text + "\n"
    return highlighter.highlight("JSON", format_json(value))


def handle_response(
    response: Response,
    highlighter: Highlighter,
    session: Optional[Session] = None,
    session_store: Optional[SessionStore] = None,
    read_only: bool = False,
    capture_headers=None,
    out: Optional[TextIO] = None,
) -> None:
    """Sync the session with the response, then print it."""
    out = out or sys.stdout
    head = header_block(response)

    if session is not None and session_store is not None and not read_only:
        session_store.update_with_response(session, response, capture_headers)
        session_store.save(session)

    text = response.text

    out.write(highlighter.highlight("HTTP", head))
    out.write("\n")
    out.write(render_body(text, highlighter))
    out.flush()
