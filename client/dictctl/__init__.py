"""dictctl -- Python client library for DICT (RFC 2229) servers.

Provides DictConnection for querying a dictionary server, the value
types it returns, and the exception hierarchy for protocol failures.

Usage::

    with DictConnection("dict.org") as conn:
        defs, _status = conn.define(Database.all(), "shortcake")
        for d in defs:
            print(d.source.desc)
"""

import logging
import socket
from typing import List, Optional, Tuple

from .exceptions import (
    InvalidCategory, InvalidReplyKind, InvalidStatus, InvalidTarget,
    MalformedAnswer, MissingErrNr, MissingHost, MissingParameters, NoAnswer,
    ProtocolError, ProtocolParseError, ServerError, TargetError,
    TransportError, TruncatedLine, UnexpectedPacket, UnknownAccess,
    Unsupported,
)
from .models import Database, Definition, Match, Strategy
from .packets import Greeting, Packet, PacketKind, read_packet
from .protocol import LineReader, Reply, atom, quote, send_command
from .status import Category, ReplyKind, Status
from .url import (
    DEFAULT_PORT, ConnectOnly, ConnectionTarget, DefineAction, MatchAction,
    parse_target,
)


__all__ = [
    "Category",
    "ConnectOnly",
    "ConnectionTarget",
    "DEFAULT_PORT",
    "Database",
    "DefineAction",
    "Definition",
    "DictConnection",
    "Greeting",
    "InvalidCategory",
    "InvalidReplyKind",
    "InvalidStatus",
    "InvalidTarget",
    "MalformedAnswer",
    "Match",
    "MatchAction",
    "MissingErrNr",
    "MissingHost",
    "MissingParameters",
    "NoAnswer",
    "Packet",
    "PacketKind",
    "ProtocolError",
    "ProtocolParseError",
    "Reply",
    "ReplyKind",
    "ServerError",
    "Status",
    "Strategy",
    "TargetError",
    "TransportError",
    "TruncatedLine",
    "UnexpectedPacket",
    "UnknownAccess",
    "Unsupported",
    "parse_target",
]

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Connection class
# ---------------------------------------------------------------------------

class DictConnection:
    """A connection to a DICT server.

    Can be used as a context manager::

        with DictConnection("dict.org") as conn:
            dbs, _ = conn.show_databases()

    Or managed manually::

        conn = DictConnection("dict.org")
        conn.connect()
        try:
            conn.client("myapp")
        finally:
            conn.close()

    Commands are half-duplex: each method sends one command and reads its
    complete answer before returning, whether it succeeds or raises.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: int = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._sock = None  # type: Optional[socket.socket]
        self._reader = None  # type: Optional[LineReader]
        self._greeting = None  # type: Optional[Greeting]

    @classmethod
    def from_socket(cls, sock: socket.socket, host: str = "",
                    port: int = DEFAULT_PORT) -> "DictConnection":
        """Wrap an already connected socket.  The greeting is not read;
        call start() before the first command."""
        conn = cls(host, port)
        conn._attach(sock)
        return conn

    # -- Context manager ---------------------------------------------------

    def __enter__(self) -> "DictConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        self.close()
        return None

    def __repr__(self) -> str:
        state = "connected" if self._sock is not None else "disconnected"
        return "DictConnection({!r}, port={}, {})".format(
            self.host, self.port, state)

    # -- Connection lifecycle ----------------------------------------------

    def _attach(self, sock: socket.socket) -> None:
        self._sock = sock
        self._reader = LineReader(sock)

    def connect(self) -> None:
        """Open TCP connection, set timeout, read and validate the greeting."""
        sock = socket.create_connection((self.host, self.port),
                                        timeout=self.timeout)
        self._attach(sock)
        try:
            self.start()
        except Exception:
            self._drop()
            raise

    def start(self) -> Tuple[str, Reply]:
        """Read the 220 greeting.

        Returns (msg_id, reply).  Raises UnexpectedPacket if the first
        packet is not a greeting, ServerError if the server refuses the
        connection (e.g. 530 access denied).
        """
        packet = self._next_packet()
        if packet.kind is not PacketKind.GREETING:
            raise UnexpectedPacket(packet)
        self._greeting = packet.payload
        log.debug("connected to %s:%d, msg-id %s", self.host, self.port,
                  self._greeting.msg_id)
        return (self._greeting.msg_id, packet.reply)

    def close(self) -> None:
        """Send QUIT (best-effort) and close the socket."""
        if self._sock is None:
            return
        try:
            self.quit()
        except (ProtocolError, OSError):
            pass
        self._drop()

    def _drop(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
        self._sock = None
        self._reader = None

    @property
    def greeting(self) -> Optional[Greeting]:
        """The decoded banner received on connect, or None."""
        return self._greeting

    @property
    def connected(self) -> bool:
        return self._sock is not None

    # -- Internal helpers --------------------------------------------------

    def _send(self, command: str) -> None:
        if self._sock is None:
            raise TransportError("Not connected")
        send_command(self._sock, command)

    def _next_packet(self) -> Packet:
        if self._reader is None:
            raise TransportError("Not connected")
        return read_packet(self._reader)

    def _expect(self, kind: PacketKind) -> Packet:
        try:
            packet = self._next_packet()
        except MalformedAnswer:
            self._drain()
            raise
        if packet.kind is not kind:
            self._reject(packet)
        return packet

    def _reject(self, packet: Packet) -> None:
        """Raise UnexpectedPacket, first draining the rest of its transaction.

        A preliminary packet is followed by more packets up to a terminal
        status; those are read off so the next command starts on a fresh
        reply.
        """
        if packet.reply.status.is_preliminary():
            self._drain()
        raise UnexpectedPacket(packet)

    def _drain(self) -> None:
        """Read packets up to the current transaction's terminal status.

        Used after MalformedAnswer or UnexpectedPacket so the next command
        starts on a fresh reply.  Stops at any completion or negative
        status.
        """
        while True:
            try:
                packet = self._next_packet()
            except ServerError:
                return
            except MalformedAnswer:
                continue
            if not packet.reply.status.is_preliminary():
                return

    def _list_transaction(self, command: str, kind: PacketKind) -> Tuple[list, Reply]:
        """Send command, expect one list packet of *kind* then 250."""
        self._send(command)
        packet = self._expect(kind)
        ok = self._expect(PacketKind.OK)
        return (packet.payload, ok.reply)

    # -- Commands ----------------------------------------------------------

    def client(self, name: str) -> Reply:
        """Send CLIENT to identify this program; returns the 250 reply."""
        self._send("CLIENT {}".format(quote(name)))
        return self._expect(PacketKind.OK).reply

    def define(self, database: Database, word: str) -> Tuple[List[Definition], Reply]:
        """Look up *word* in *database*.

        Returns (definitions, status) where status is the closing 250
        reply.  A 552 "no match" raises ServerError; definitions read
        before a failure are discarded.
        """
        self._send("DEFINE {} {}".format(quote(database.name), quote(word)))
        self._expect(PacketKind.DEFINITIONS_FOLLOW)

        definitions = []  # type: List[Definition]
        while True:
            try:
                packet = self._next_packet()
            except MalformedAnswer:
                self._drain()
                raise
            if packet.kind is PacketKind.DEFINITION:
                definitions.append(packet.payload)
            elif packet.kind is PacketKind.OK:
                return (definitions, packet.reply)
            else:
                self._reject(packet)

    def match(self, database: Database, strategy: Strategy,
              word: str) -> Tuple[List[Match], Reply]:
        """Find words in *database* matching *word* under *strategy*.

        Returns (matches, status).
        """
        return self._list_transaction(
            "MATCH {} {} {}".format(database.name, strategy.name, atom(word)),
            PacketKind.MATCHES)

    def show_databases(self) -> Tuple[List[Database], Reply]:
        """Send SHOW DATABASES; returns (databases, status)."""
        return self._list_transaction("SHOW DATABASES", PacketKind.DATABASES)

    def show_strategies(self) -> Tuple[List[Strategy], Reply]:
        """Send SHOW STRATEGIES; returns (strategies, status)."""
        return self._list_transaction("SHOW STRATEGIES", PacketKind.STRATEGIES)

    def quit(self) -> Reply:
        """Send QUIT and return the 221 reply.

        The server closes the connection afterwards; use close() to also
        release the socket.
        """
        self._send("QUIT")
        return self._next_packet().reply
