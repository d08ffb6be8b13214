"""Packet classifier: turns replies (plus any payload) into typed packets.

``read_packet`` consumes exactly one reply from the connection and, for
the status codes that announce a payload (110, 111, 151, 152), the text
block that follows it.  It keeps no state between calls.

Dispatch on the status triple:

    250  OK                    plain completion
    220  GREETING              connection banner
    150  DEFINITIONS_FOLLOW    start of a DEFINE answer
    151  DEFINITION            one definition (trailer + text block)
    152  MATCHES               match list (text block)
    110  DATABASES             database list (text block)
    111  STRATEGIES            strategy list (text block)
    1xx/2xx/3xx  REPLY         any other positive status
    4xx/5xx                    raises ServerError
"""

import enum
import re
from typing import List, NamedTuple, Tuple, Union

from .exceptions import MalformedAnswer, ServerError
from .models import Database, Definition, Match, Strategy
from .protocol import LineReader, Reply, read_reply, read_text_block, split_arguments
from .status import Category, ReplyKind, Status


class PacketKind(enum.Enum):
    REPLY = "reply"
    OK = "ok"
    GREETING = "greeting"
    DEFINITIONS_FOLLOW = "definitions-follow"
    DEFINITION = "definition"
    MATCHES = "matches"
    DATABASES = "databases"
    STRATEGIES = "strategies"


class Greeting(NamedTuple):
    """Decoded 220 banner text."""

    text: str
    capabilities: Tuple[str, ...]
    msg_id: str


Payload = Union[None, Greeting, Definition, List[Match], List[Database],
                List[Strategy]]


class Packet(NamedTuple):
    kind: PacketKind
    reply: Reply
    payload: Payload = None


_OK = Status(ReplyKind.POSITIVE_COMPLETION, Category.SYSTEM, 0)
_DEFINITIONS_FOLLOW = Status(ReplyKind.POSITIVE_PRELIMINARY, Category.SYSTEM, 0)
_DEFINITION = Status(ReplyKind.POSITIVE_PRELIMINARY, Category.SYSTEM, 1)
_MATCHES = Status(ReplyKind.POSITIVE_PRELIMINARY, Category.SYSTEM, 2)
_DATABASES = Status(ReplyKind.POSITIVE_PRELIMINARY, Category.INFORMATION, 0)
_STRATEGIES = Status(ReplyKind.POSITIVE_PRELIMINARY, Category.INFORMATION, 1)

_ANGLE_RE = re.compile(r"<[^<>]*>")


def parse_greeting(text: str) -> Greeting:
    """Pull capabilities and msg-id out of a 220 banner.

    ``dict.org dictd 1.12 <auth.mime> <1234.5@dict.org>`` has
    capabilities ``('auth', 'mime')`` and msg-id ``<1234.5@dict.org>``.
    A banner with a single bracket group has no capabilities.
    """
    groups = _ANGLE_RE.findall(text)
    if not groups:
        return Greeting(text, (), "")
    capabilities = ()  # type: Tuple[str, ...]
    if len(groups) > 1:
        capabilities = tuple(c for c in groups[0][1:-1].split(".") if c)
    return Greeting(text, capabilities, groups[-1])


def _field(args: List[str], index: int, what: str) -> str:
    try:
        return args[index]
    except IndexError:
        raise MalformedAnswer("Missing {}".format(what))


def _parse_definition(reply: Reply, body: List[str]) -> Definition:
    # Trailer: 151 "word" database "description"; reply.text has the
    # status stripped, so the word sits at index 0.
    args = split_arguments(reply.text)
    name = _field(args, 1, "database name")
    desc = _field(args, 2, "database description")
    return Definition.from_lines(Database(name, desc), body)


def _parse_match(line: str) -> Match:
    args = split_arguments(line)
    name = _field(args, 0, "database name")
    word = _field(args, 1, "matched word")
    return Match(Database(name), word)


def _parse_database(line: str) -> Database:
    args = split_arguments(line)
    return Database(_field(args, 0, "database name"),
                    _field(args, 1, "database description"))


def _parse_strategy(line: str) -> Strategy:
    args = split_arguments(line)
    return Strategy(_field(args, 0, "strategy name"),
                    _field(args, 1, "strategy description"))


_LIST_PACKETS = {
    _MATCHES: (PacketKind.MATCHES, _parse_match),
    _DATABASES: (PacketKind.DATABASES, _parse_database),
    _STRATEGIES: (PacketKind.STRATEGIES, _parse_strategy),
}


def read_packet(reader: LineReader) -> Packet:
    """Read the next reply (and its payload, if any) as a Packet.

    Raises ServerError for negative replies, MalformedAnswer when a
    trailer or payload line is short of fields, and the parse/transport
    errors of :mod:`dictctl.protocol` unchanged.  Payload blocks are
    consumed in full before MalformedAnswer is raised, so the next call
    starts on a reply line.
    """
    reply = read_reply(reader)
    status = reply.status

    if status == _OK:
        return Packet(PacketKind.OK, reply)
    if status.is_start_of_session():
        return Packet(PacketKind.GREETING, reply, parse_greeting(reply.text))
    if status == _DEFINITIONS_FOLLOW:
        return Packet(PacketKind.DEFINITIONS_FOLLOW, reply)
    if status == _DEFINITION:
        body = read_text_block(reader)
        return Packet(PacketKind.DEFINITION, reply,
                      _parse_definition(reply, body))

    entry = _LIST_PACKETS.get(status)
    if entry is not None:
        kind, parse_line = entry
        lines = read_text_block(reader)
        return Packet(kind, reply, [parse_line(line) for line in lines])

    if status.is_positive():
        return Packet(PacketKind.REPLY, reply)
    raise ServerError(reply)

