"""dict:// connection targets.

Resolves a URL of the form::

    dict://<host>[:<port>]/[d:<word>[:<db>[:<n>]]|m:<word>[:<db>[:<strategy>[:<n>]]]]

into a host, port and the initial action to run once connected
(RFC 2229 section 5).  ``n`` is an optional result index; anything that
is not a non-negative integer counts as 0.
"""

import re
from typing import NamedTuple, Optional, Union
from urllib.parse import unquote, urlsplit

from .exceptions import (
    InvalidTarget, MissingHost, MissingParameters, UnknownAccess, Unsupported,
)
from .models import Database, Strategy

DEFAULT_PORT = 2628
SCHEME = "dict"

_COUNT_RE = re.compile(r"\+?[0-9]+")


class ConnectOnly(NamedTuple):
    pass


class DefineAction(NamedTuple):
    word: str
    database: Database
    count: Optional[int] = None


class MatchAction(NamedTuple):
    word: str
    database: Database
    strategy: Strategy
    count: Optional[int] = None


Action = Union[ConnectOnly, DefineAction, MatchAction]


class ConnectionTarget(NamedTuple):
    host: str
    port: int
    action: Action


def _count(parts):
    # Present-but-garbled counts become 0 rather than an error.
    if not parts:
        return None
    value = parts[0]
    return int(value) if _COUNT_RE.fullmatch(value) else 0


def _nonempty(parts, index):
    if len(parts) > index and parts[index]:
        return unquote(parts[index])
    return None


def parse_access(path: str) -> Action:
    """Decode the path portion (``/d:word:db``) of a dict:// URL."""
    if not path.startswith("/"):
        return ConnectOnly()
    parts = path[1:].split(":")
    method = parts[0]

    if method == "":
        return ConnectOnly()
    if method not in ("d", "m"):
        raise UnknownAccess(method)

    word = _nonempty(parts, 1)
    if word is None:
        raise MissingParameters()
    db_name = _nonempty(parts, 2)
    database = Database(db_name) if db_name else Database.default()

    if method == "d":
        return DefineAction(word, database, _count(parts[3:]))

    strat_name = _nonempty(parts, 3)
    strategy = Strategy(strat_name) if strat_name else Strategy.default()
    return MatchAction(word, database, strategy, _count(parts[4:]))


def parse_target(url: str) -> ConnectionTarget:
    """Parse a dict:// URL into a ConnectionTarget.

    Raises MissingHost, MissingParameters, UnknownAccess, Unsupported (for
    ``user@`` credentials) or InvalidTarget (wrong scheme, bad port).
    """
    parts = urlsplit(url)
    if parts.scheme.lower() != SCHEME:
        raise InvalidTarget("Not a dict:// URL: {!r}".format(url))
    if parts.username:
        raise Unsupported("Auth part is not supported")
    if not parts.hostname:
        raise MissingHost()
    try:
        port = parts.port
    except ValueError:
        raise InvalidTarget("Invalid port in {!r}".format(url))

    return ConnectionTarget(
        host=parts.hostname,
        port=port if port is not None else DEFAULT_PORT,
        action=parse_access(parts.path),
    )
