"""Wire protocol helpers for the dictctl client.

Handles line reading, reply parsing, text-block reading with
dot-unstuffing, trailer tokenizing, and command sending per RFC 2229.
All wire communication uses UTF-8; commands are sent CRLF-terminated,
replies are accepted with CRLF or bare LF.
"""

import logging
import re
import socket
from typing import List, Optional

from .exceptions import (
    InvalidCategory, InvalidReplyKind, InvalidStatus, MalformedAnswer,
    MissingErrNr, NoAnswer, ProtocolError, ProtocolParseError, ServerError,
    TransportError, TruncatedLine, UnexpectedPacket,
)
from .status import Status

ENCODING = "utf-8"

log = logging.getLogger(__name__)

_ASCII_WHITESPACE = re.compile(r"[ \t\n\r\f]+")

__all__ = [
    "ENCODING",
    "InvalidCategory",
    "InvalidReplyKind",
    "InvalidStatus",
    "LineReader",
    "MalformedAnswer",
    "MissingErrNr",
    "NoAnswer",
    "ProtocolError",
    "ProtocolParseError",
    "Reply",
    "ServerError",
    "TransportError",
    "TruncatedLine",
    "UnexpectedPacket",
    "atom",
    "parse_reply",
    "quote",
    "read_reply",
    "read_text_block",
    "send_command",
    "split_arguments",
]


class Reply:
    """One decoded status line: ``Reply(status, text)``."""

    __slots__ = ("status", "text")

    def __init__(self, status: Status, text: str) -> None:
        self.status = status
        self.text = text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Reply):
            return NotImplemented
        return self.status == other.status and self.text == other.text

    def __repr__(self) -> str:
        return "Reply({!r}, {!r})".format(str(self.status), self.text)

    def __str__(self) -> str:
        return "{} {}".format(self.status, self.text)


class LineReader:
    """Buffered line reader over a connected socket.

    Owns the receive buffer for the connection; nothing else may call
    ``recv`` on the same socket.
    """

    def __init__(self, sock: socket.socket, bufsize: int = 4096) -> None:
        self.sock = sock
        self.bufsize = bufsize
        self._buf = bytearray()

    def read_line(self) -> Optional[str]:
        """Read one line and strip its CR LF or bare LF.

        Returns None on a clean end-of-stream (no pending bytes).  Raises
        TransportError if the connection closes mid-line, on socket
        timeout, or on any other socket error.
        """
        while True:
            idx = self._buf.find(b"\n")
            if idx >= 0:
                raw = bytes(self._buf[:idx])
                del self._buf[:idx + 1]
                break
            try:
                chunk = self.sock.recv(self.bufsize)
            except socket.timeout:
                raise TransportError("Timed out waiting for data from server")
            except OSError as e:
                raise TransportError("Socket error: {}".format(e))
            if not chunk:
                if self._buf:
                    raise TransportError(
                        "Connection closed mid-line (partial data: {!r})".format(
                            bytes(self._buf)))
                return None
            self._buf.extend(chunk)

        line = raw.decode(ENCODING, errors="replace")
        if line.endswith("\r"):
            line = line[:-1]
        return line


def parse_reply(line: str) -> Reply:
    """Split a reply line into its status and stripped free text.

    Raises TruncatedLine for lines shorter than three characters and an
    InvalidStatus subclass when the status digits do not decode.
    """
    if len(line) < 3:
        raise TruncatedLine(line)
    status = Status.parse(line[:3])
    return Reply(status, line[3:].strip())


def read_reply(reader: LineReader) -> Reply:
    """Read and parse the next reply line.

    Raises NoAnswer if the server closed the connection instead.
    """
    line = reader.read_line()
    if line is None:
        raise NoAnswer()
    log.debug("<<< %s", line)
    return parse_reply(line)


def read_text_block(reader: LineReader) -> List[str]:
    """Read payload lines up to (and consuming) the ``.`` sentinel.

    Lines starting with ``..`` are dot-unstuffed.  The sentinel itself is
    not returned.  End-of-stream before the sentinel raises
    TransportError; a partial block is never returned.
    """
    lines = []  # type: List[str]
    while True:
        line = reader.read_line()
        if line is None:
            raise TransportError(
                "Connection closed inside text block after {} lines".format(
                    len(lines)))
        if line == ".":
            break
        if line.startswith(".."):
            line = line[1:]
        lines.append(line)
    log.debug("<<< [%d text lines]", len(lines))
    return lines


def split_arguments(text: str) -> List[str]:
    """Tokenize reply trailer text, honoring double-quoted fields.

    ``'"shortcake" wn "WordNet (r) 3.0"'`` gives ``['shortcake', 'wn',
    'WordNet (r) 3.0']``.  Tokens are separated by ASCII whitespace only,
    and runs of it inside a quoted field collapse to one space.  A quote
    still open at end of line is closed silently and its accumulated text
    is dropped, so ``'a "b c'`` gives ``['a']``.
    """
    tokens = []  # type: List[str]
    pending = None  # type: Optional[List[str]]

    for part in _ASCII_WHITESPACE.split(text):
        if not part:
            continue
        if pending is None:
            if not part.startswith('"'):
                tokens.append(part)
            elif len(part) > 1 and part.endswith('"'):
                tokens.append(part[1:-1])
            else:
                pending = [part[1:]]
        elif part.endswith('"'):
            pending.append(part[:-1])
            tokens.append(" ".join(pending))
            pending = None
        else:
            pending.append(part)

    return tokens


def quote(word: str) -> str:
    """Quote a command argument, escaping embedded quotes and backslashes."""
    return '"{}"'.format(word.replace("\\", "\\\\").replace('"', '\\"'))


def atom(word: str) -> str:
    """Return *word* bare if it is a single plain token, else quote() it."""
    if word and not any(c.isspace() or c in "\"\\'" for c in word):
        return word
    return quote(word)


def send_command(sock: socket.socket, command: str) -> None:
    """Send a command line to the server.

    Appends CR LF and encodes as UTF-8.  Socket failures become
    TransportError.
    """
    log.debug(">>> %s", command)
    data = (command + "\r\n").encode(ENCODING)
    try:
        sock.sendall(data)
    except socket.timeout:
        raise TransportError("Timed out sending command")
    except OSError as e:
        raise TransportError("Socket error: {}".format(e))
