"""
Command line surface: parses argv into an App and checks it before any
request is made.
"""

import argparse
import logging
from typing import List, Optional

import httpx

from .client import normalize_url
from .errors import MissingUrlAndCommand, from_url_error
from .parameters import Parameter, parse_all

__version__ = "0.1.0"

METHODS = ('GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'HEAD', 'OPTIONS', 'TRACE')

USAGE = "hurl [OPTIONS] [METHOD] URL [PARAMETER ...]"

PARAMETER_HELP = """\
parameters:
  key==value   query string parameter
  key=value    data field (JSON body, or form field with --form)
  key:=json    raw JSON data field, e.g. count:=3 tags:='["a","b"]'
  key:value    request header
  key@path     file upload, requires --form
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hurl",
        usage=USAGE,
        description="Make one HTTP request and print the response.",
        epilog=PARAMETER_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Silence all logging.")
    parser.add_argument("-v", "--verbose", action="count", default=None,
                        help="More logging, repeat for more (-vvvv is debug).")
    parser.add_argument("-f", "--form", action="store_true", default=None,
                        help="Send data fields and files as a multipart form.")
    parser.add_argument("-a", "--auth", help="Basic auth credentials, USER[:PASSWORD].")
    parser.add_argument("-t", "--token", help="Bearer token.")
    parser.add_argument("-s", "--session", help="Name of the session to use and update.")
    parser.add_argument("-r", "--read-only", action="store_true",
                        help="Use the session without updating it.")
    parser.add_argument("-c", "--config", help="Path to a config.yaml file.")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("args", nargs="*", metavar="[METHOD] URL [PARAMETER]")
    return parser


class App:
    """Validated command line options for one invocation."""

    def __init__(self, namespace: argparse.Namespace):
        self.quiet = namespace.quiet
        self.verbose = namespace.verbose
        self.form = namespace.form
        self.auth = namespace.auth
        self.token = namespace.token
        self.session = namespace.session
        self.read_only = namespace.read_only
        self.config = namespace.config
        self.timeout = namespace.timeout
        self.raw_args: List[str] = list(namespace.args)

        self.method: Optional[str] = None
        self.url: Optional[str] = None
        self.raw_parameters: List[str] = []
        self.parameters: List[Parameter] = []

    @classmethod
    def from_args(cls, argv: Optional[List[str]] = None) -> "App":
        return cls(build_parser().parse_args(argv))

    def validate(self) -> None:
        """Split positionals into method, URL and parameters and parse them."""
        args = list(self.raw_args)
        if len(args) >= 2 and args[0].upper() in METHODS:
            self.method = args.pop(0).upper()
        if not args:
            raise MissingUrlAndCommand()
        self.url = normalize_url(args.pop(0))
        self.raw_parameters = args
        self.parameters = parse_all(self.raw_parameters, form=bool(self.form))

    def process_config_file(self, config) -> None:
        """Fill options the command line left unset from the config defaults."""
        defaults = config.defaults
        if self.verbose is None and defaults.get('verbose') is not None:
            self.verbose = int(defaults['verbose'])
        if self.form is None:
            self.form = bool(defaults.get('form', False))
        if self.auth is None:
            self.auth = defaults.get('auth')
        if self.token is None:
            self.token = defaults.get('token')
        if self.timeout is None:
            self.timeout = config.timeout

    def log_level(self, config=None) -> Optional[int]:
        """Logging level for the verbosity, or None when logging is off."""
        if self.quiet:
            return None
        if self.verbose:
            levels = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]
            return levels[min(self.verbose, len(levels)) - 1]
        if config is not None and config.logging.get('level'):
            level = logging.getLevelName(str(config.logging['level']).upper())
            if isinstance(level, int):
                return level
        return None

    def host(self) -> str:
        try:
            return httpx.URL(self.url).host
        except (httpx.InvalidURL, TypeError) as e:
            raise from_url_error(e) from e
