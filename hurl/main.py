"""
Entrypoint: parse the command line, load config, set up logging and syntax
highlighting, open the session, make the request and print the response.
"""

import asyncio
import logging
import sys
from typing import List, Optional

import structlog
from dotenv import load_dotenv

from . import syntax
from .app import App
from .client import Client, perform
from .config import Config
from .errors import HurlError
from .render import handle_response
from .session import SessionStore


def setup_logging(level: Optional[int]) -> None:
    """Route structlog through stdlib logging on stderr; level None turns it off."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level if level is not None else logging.CRITICAL + 1,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def run(app: App, config: Config, highlighter: syntax.Highlighter,
              session_store: Optional[SessionStore] = None, client: Optional[Client] = None,
              out=None) -> None:
    """Run one request through the whole pipeline."""
    logger = structlog.get_logger(__name__)
    client = client or Client(config, timeout=app.timeout)

    session = None
    if app.session:
        session_store = session_store or SessionStore()
        session = session_store.get_or_create(app.session, app.host())

    response = await perform(app, client, session_store, session)
    logger.debug("rendering_response", status_code=response.status_code)
    handle_response(
        response,
        highlighter,
        session=session,
        session_store=session_store,
        read_only=app.read_only,
        capture_headers=config.capture_headers,
        out=out,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the hurl command."""
    app = App.from_args(argv)
    # stdout carries only the rendered response
    setup_logging(app.log_level())
    try:
        load_dotenv()
        config = Config(app.config)
        app.process_config_file(config)
        setup_logging(app.log_level(config))
        app.validate()

        highlighter = syntax.build(config.theme, config.color)
        asyncio.run(run(app, config, highlighter))
    except HurlError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
