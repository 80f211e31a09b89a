"""
Named sessions: cookies and default headers kept per (name, host) between
invocations.

A session file holds the records of every host used under one name:

    {"example.com": {"cookies": {...}, "headers": {...}, "auth": null, "token": null}}

Two hurl processes writing the same session name at once can lose one of the
updates; there is no locking.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, Optional

import structlog

from . import directories
from .errors import IoError, SerdeJson, from_json_error, from_os_error
from .parameters import Header, Parameter

logger = structlog.get_logger(__name__)


@dataclass
class Session:
    name: str
    host: str
    cookies: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    auth: Optional[str] = None
    token: Optional[str] = None

    def to_record(self) -> dict:
        return {
            'cookies': dict(sorted(self.cookies.items())),
            'headers': dict(sorted(self.headers.items())),
            'auth': self.auth,
            'token': self.token,
        }

    @classmethod
    def from_record(cls, name: str, host: str, record: Mapping) -> "Session":
        return cls(
            name=name,
            host=host,
            cookies={str(k): str(v) for k, v in (record.get('cookies') or {}).items()},
            headers={str(k): str(v) for k, v in (record.get('headers') or {}).items()},
            auth=record.get('auth'),
            token=record.get('token'),
        )


class SessionStorage:
    """Key-value persistence for session documents."""

    def load(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def save(self, key: str, data: bytes) -> None:
        raise NotImplementedError


class FileStorage(SessionStorage):
    """Stores each key in its own file, replaced atomically on save."""

    def __init__(self, resolve: Callable[[str], Path] = directories.session_path):
        self.resolve = resolve

    def load(self, key: str) -> Optional[bytes]:
        path = self.resolve(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise from_os_error(e) from e

    def save(self, key: str, data: bytes) -> None:
        path = self.resolve(key)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise from_os_error(e) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("session_tmp_cleanup_failed", path=tmp_name)


class MemoryStorage(SessionStorage):
    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.saves = 0

    def load(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def save(self, key: str, data: bytes) -> None:
        self.saves += 1
        self.data[key] = data


class SessionStore:
    """Loads, updates and saves sessions through a SessionStorage."""

    def __init__(self, storage: Optional[SessionStorage] = None):
        self.storage = storage or FileStorage()

    def _load_document(self, name: str) -> dict:
        raw = self.storage.load(name)
        if raw is None:
            return {}
        try:
            document = json.loads(raw.decode('utf-8'))
        except UnicodeDecodeError as e:
            raise IoError("InvalidData") from e
        except json.JSONDecodeError as e:
            raise from_json_error(e) from e
        if not isinstance(document, dict):
            raise SerdeJson("Data")
        return document

    def get_or_create(self, name: str, host: str) -> Session:
        """Return the persisted session for (name, host), or a new empty one.

        Nothing is written for a new session until it is saved.
        """
        record = self._load_document(name).get(host)
        if isinstance(record, dict):
            logger.debug("session_loaded", name=name, host=host)
            return Session.from_record(name, host, record)
        logger.debug("session_created", name=name, host=host)
        return Session(name=name, host=host)

    def update_with_response(self, session: Session, response, capture_headers: Optional[Mapping[str, str]] = None) -> None:
        """Merge the cookies a response set into the session.

        capture_headers maps a response header name to the session default
        header it should be stored under, e.g. {"X-Auth-Token": "Authorization"}.
        """
        for name, value in response.cookies.items():
            session.cookies[name] = value

        if capture_headers:
            for response_name, session_name in capture_headers.items():
                value = response.header(response_name)
                if value is not None:
                    session.headers[session_name] = value

    def update_with_parameters(self, session: Session, parameters: Iterable[Parameter],
                               auth: Optional[str] = None, token: Optional[str] = None) -> None:
        """Remember header parameters and credentials given on the command line."""
        for param in parameters:
            if isinstance(param, Header):
                session.headers[param.key] = param.value
        if auth is not None:
            session.auth = auth
        if token is not None:
            session.token = token

    def save(self, session: Session) -> None:
        document = self._load_document(session.name)
        document[session.host] = session.to_record()
        try:
            data = json.dumps(document, indent=2, sort_keys=True).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise from_json_error(e) from e
        self.storage.save(session.name, data)
        logger.info("session_saved", name=session.name, host=session.host)
