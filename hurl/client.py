"""
Builds the outgoing request from the parsed parameters and sends it with httpx.
"""

import base64
import json
import mimetypes
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

import httpx
import structlog

from .errors import from_http_error, from_json_error, from_os_error, from_url_error
from .parameters import Data, FormFile, Header, Parameter, Query, is_data
from .session import Session

logger = structlog.get_logger(__name__)

USER_AGENT = 'hurl/0.1.0'


@dataclass
class Response:
    """A fully buffered HTTP response."""

    status_code: int
    reason: str
    http_version: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    cookies: Dict[str, str] = field(default_factory=dict)
    content: bytes = b''
    fetch_time: float = 0.0

    def header(self, name: str) -> Optional[str]:
        """First value of a header, matched case-insensitively."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    @property
    def content_length(self) -> Optional[int]:
        value = self.header('content-length')
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def text(self) -> str:
        """Decode the body, never failing; an empty body is ''."""
        if not self.content:
            return ""
        return self.content.decode('utf-8', errors='replace')

    @classmethod
    def from_httpx(cls, response: httpx.Response, fetch_time: float = 0.0) -> "Response":
        return cls(
            status_code=response.status_code,
            reason=response.reason_phrase or "unknown",
            http_version=response.http_version,
            headers=[(k.decode('latin-1'), v.decode('latin-1')) for k, v in response.headers.raw],
            cookies={cookie.name: cookie.value for cookie in response.cookies.jar},
            content=response.content,
            fetch_time=fetch_time,
        )


def normalize_url(url: str) -> str:
    """`:8000/x` means localhost; a bare host gets http://."""
    if url.startswith(':'):
        url = 'http://localhost' + url
    elif '://' not in url:
        url = 'http://' + url
    return url


def _parse_url(url: str) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, ValueError, TypeError) as e:
        raise from_url_error(e) from e
    if not parsed.scheme or not parsed.host:
        raise from_url_error(ValueError(f"relative URL without a base: {url}"))
    return parsed


def _auth_header(auth: Optional[str], token: Optional[str]) -> Optional[str]:
    """Bearer token wins over `user:pass` basic credentials."""
    if token:
        return f"Bearer {token}"
    if auth:
        username, _, password = auth.partition(':')
        credentials = base64.b64encode(f"{username}:{password}".encode('utf-8')).decode('ascii')
        return f"Basic {credentials}"
    return None


def _append_query(target: httpx.URL, query: List[Tuple[str, str]]) -> httpx.URL:
    encoded = urlencode(query)
    existing = target.query.decode('ascii')
    return target.copy_with(query=(f"{existing}&{encoded}" if existing else encoded).encode('ascii'))


def _read_form_file(param: FormFile) -> Tuple[str, bytes, str]:
    path = Path(param.filepath).expanduser()
    try:
        content = path.read_bytes()
    except OSError as e:
        logger.error("form_file_unreadable", path=str(path), error=str(e))
        raise from_os_error(e) from e
    content_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
    return path.name, content, content_type


def _json_body(fields: Dict[str, object]) -> bytes:
    try:
        return json.dumps(fields, ensure_ascii=False).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise from_json_error(e) from e


def _form_value(param: Data) -> bytes:
    if param.is_json_typed:
        return json.dumps(param.value, ensure_ascii=False).encode('utf-8')
    return param.value.encode('utf-8')


def build_request(
    method: str,
    url: str,
    parameters: Sequence[Parameter],
    session: Optional[Session] = None,
    form: bool = False,
    auth: Optional[str] = None,
    token: Optional[str] = None,
) -> httpx.Request:
    """Turn a method, URL and ordered parameters into an httpx.Request.

    Header precedence, lowest first: session headers, session credentials,
    command line credentials, header parameters.
    """
    target = _parse_url(normalize_url(url))

    query = [(p.key, p.value) for p in parameters if isinstance(p, Query)]
    if query:
        target = _append_query(target, query)

    headers = httpx.Headers({'User-Agent': USER_AGENT})
    if session is not None:
        for key, value in session.headers.items():
            headers[key] = value
        session_auth = _auth_header(session.auth, session.token)
        if session_auth:
            headers['Authorization'] = session_auth
        if session.cookies:
            headers['Cookie'] = '; '.join(f"{k}={v}" for k, v in sorted(session.cookies.items()))

    cli_auth = _auth_header(auth, token)
    if cli_auth:
        headers['Authorization'] = cli_auth

    for param in parameters:
        if isinstance(param, Header):
            headers[param.key] = param.value

    data_params = [p for p in parameters if isinstance(p, Data)]
    file_params = [p for p in parameters if isinstance(p, FormFile)]
    any_json_typed = any(p.is_json_typed for p in data_params)

    content = None
    files = None
    if file_params or (form and data_params and not any_json_typed):
        # Multipart; duplicate keys keep their first position and last value.
        parts: Dict[str, tuple] = {}
        for param in parameters:
            if isinstance(param, Data):
                parts[param.key] = (None, _form_value(param))
            elif isinstance(param, FormFile):
                parts[param.key] = _read_form_file(param)
        files = list(parts.items())
    elif data_params:
        fields: Dict[str, object] = {}
        for param in data_params:
            fields[param.key] = param.value
        content = _json_body(fields)
        if 'Content-Type' not in headers:
            headers['Content-Type'] = 'application/json'
        if 'Accept' not in headers:
            headers['Accept'] = 'application/json, */*'

    request = httpx.Request(method.upper(), target, headers=headers, content=content, files=files)
    logger.debug("request_built", method=request.method, url=str(request.url),
                 has_body=any(is_data(p) for p in parameters))
    return request


class Client:
    """Sends one request and returns the buffered Response."""

    def __init__(self, config=None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        client_config = config.client if config is not None else {}
        self.timeout = timeout if timeout is not None else float(client_config.get('timeout', 30.0))
        self.follow_redirects = bool(client_config.get('follow_redirects', True))
        self.max_redirects = int(client_config.get('max_redirects', 10))
        self.raise_for_status = bool(client_config.get('raise_for_status', False))
        self.verify = bool(client_config.get('verify', True))
        self.transport = transport

    def _make_client(self) -> httpx.AsyncClient:
        kwargs = dict(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=self.follow_redirects,
            max_redirects=self.max_redirects,
        )
        if self.transport is not None:
            kwargs['transport'] = self.transport
        else:
            kwargs['verify'] = self.verify
        return httpx.AsyncClient(**kwargs)

    async def execute(self, request: httpx.Request) -> Response:
        start_time = time.time()
        try:
            async with self._make_client() as client:
                response = await client.send(request)
                if self.raise_for_status:
                    response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("request_failed", method=request.method, url=str(request.url),
                           error_type=type(e).__name__, error=str(e))
            raise from_http_error(e) from e

        fetch_time = time.time() - start_time
        logger.info("response_received", status_code=response.status_code,
                    url=str(response.url), fetch_time=round(fetch_time, 3))
        return Response.from_httpx(response, fetch_time=fetch_time)


def choose_method(method: Optional[str], parameters: Sequence[Parameter]) -> str:
    """An explicit method wins; otherwise POST when there is a body, else GET."""
    if method:
        return method.upper()
    if any(is_data(p) for p in parameters):
        return 'POST'
    return 'GET'


async def perform(app, client: Client, session_store=None, session: Optional[Session] = None) -> Response:
    """Build and send the request described by the command line."""
    method = choose_method(app.method, app.parameters)
    request = build_request(
        method,
        app.url,
        app.parameters,
        session=session,
        form=app.form,
        auth=app.auth,
        token=app.token,
    )
    if session is not None and session_store is not None and not app.read_only:
        session_store.update_with_parameters(session, app.parameters, auth=app.auth, token=app.token)
    return await client.execute(request)
