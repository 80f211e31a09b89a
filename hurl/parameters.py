"""
CLI parameter items: `key==value` query, `key=value` data, `key:=json` typed
data, `key:value` header and `key@path` form file.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable, List, Union

import structlog

from .errors import NotFormButHasFormFile, ParameterMissingSeparator, from_json_error

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Query:
    key: str
    value: str


@dataclass(frozen=True)
class Data:
    key: str
    value: Any
    is_json_typed: bool = False


@dataclass(frozen=True)
class Header:
    key: str
    value: str


@dataclass(frozen=True)
class FormFile:
    key: str
    filepath: str


Parameter = Union[Query, Data, Header, FormFile]


def is_data(param: Parameter) -> bool:
    """Data fields and form files both make a request body."""
    return isinstance(param, (Data, FormFile))


def is_form_file(param: Parameter) -> bool:
    return isinstance(param, FormFile)


def _find_separator(raw: str):
    # Earliest position wins; at one position the two-character form wins.
    for i, ch in enumerate(raw):
        nxt = raw[i + 1] if i + 1 < len(raw) else ""
        if ch == "=":
            return ("==", i) if nxt == "=" else ("=", i)
        if ch == ":":
            return (":=", i) if nxt == "=" else (":", i)
        if ch == "@":
            return ("@", i)
    return None, -1


def parse(raw: str) -> Parameter:
    """Parse one raw `key<sep>value` token into a Parameter."""
    sep, pos = _find_separator(raw)
    if sep is None:
        raise ParameterMissingSeparator(raw)

    key, value = raw[:pos], raw[pos + len(sep):]
    if sep == "==":
        return Query(key, value)
    if sep == "=":
        return Data(key, value)
    if sep == ":=":
        try:
            return Data(key, json.loads(value), is_json_typed=True)
        except json.JSONDecodeError as e:
            raise from_json_error(e) from e
    if sep == ":":
        return Header(key, value.strip())
    return FormFile(key, value)


def parse_all(tokens: Iterable[str], form: bool = False) -> List[Parameter]:
    """Parse every token in order, then check them against the form flag."""
    params = [parse(token) for token in tokens]
    validate(params, form)
    logger.debug("parameters_parsed", count=len(params), form=form)
    return params


def validate(params: Iterable[Parameter], form: bool) -> None:
    if form:
        return
    for param in params:
        if is_form_file(param):
            raise NotFormButHasFormFile()
