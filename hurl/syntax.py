"""
Terminal syntax highlighting for the header block and JSON bodies.
"""

from typing import Dict

import structlog
from pygments import highlight
from pygments.formatters import TerminalTrueColorFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .errors import SyntaxLoadError

logger = structlog.get_logger(__name__)

RESET = "\x1b[0m"

# Display name -> pygments lexer alias
SYNTAXES = {
    "HTTP": "http",
    "JSON": "json",
}


class Highlighter:
    def __init__(self, lexers: Dict[str, object], formatter=None):
        self.lexers = lexers
        self.formatter = formatter

    @property
    def color(self) -> bool:
        return self.formatter is not None

    def highlight(self, syntax: str, text: str) -> str:
        """Return `text` highlighted as `syntax`, ending with a newline."""
        lexer = self.lexers.get(syntax)
        if lexer is None:
            raise SyntaxLoadError(syntax)
        if not self.color:
            return text if text.endswith("\n") else text + "\n"
        return highlight(text, lexer, self.formatter).rstrip("\n") + RESET + "\n"


def build(theme: str = "solarized-dark", color: bool = True) -> Highlighter:
    """Load every syntax up front so a missing one fails before any request."""
    lexers = {}
    for name, alias in SYNTAXES.items():
        try:
            lexers[name] = get_lexer_by_name(alias, stripnl=False, ensurenl=False)
        except ClassNotFound as e:
            raise SyntaxLoadError(name) from e

    formatter = None
    if color:
        try:
            formatter = TerminalTrueColorFormatter(style=theme)
        except ClassNotFound as e:
            raise SyntaxLoadError(theme) from e

    logger.debug("syntax_loaded", syntaxes=list(lexers), theme=theme if color else None)
    return Highlighter(lexers, formatter)
