"""dictctl exception hierarchy.

All custom exceptions live here to avoid circular imports between the
status, protocol and packet modules.
"""


class ProtocolError(Exception):
    """Base for everything that can go wrong talking to a DICT server."""


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------

class ProtocolParseError(ProtocolError):
    """A reply line could not be decoded."""


class TruncatedLine(ProtocolParseError):
    """Reply line shorter than the three status digits."""

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__("Truncated reply line: {!r}".format(line))


class InvalidStatus(ProtocolParseError):
    """The three leading characters are not a valid status code.

    Attributes:
        text: The offending status text.
    """

    reason = "Invalid status"

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__("{}: {!r}".format(self.reason, text))


class InvalidReplyKind(InvalidStatus):
    reason = "Invalid reply kind"


class InvalidCategory(InvalidStatus):
    reason = "Invalid category"


class MissingErrNr(InvalidStatus):
    reason = "Missing error number"


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------

class TransportError(ProtocolError):
    """Socket failure, timeout, or connection closed mid-line/mid-block."""


class NoAnswer(TransportError):
    """The server closed the connection where a reply was required."""

    def __init__(self, message: str = "No answer from server") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Semantic errors
# ---------------------------------------------------------------------------

class ServerError(ProtocolError):
    """The server answered with a negative (4xx/5xx) status.

    Attributes:
        reply: The full Reply, kept for display.
    """

    def __init__(self, reply) -> None:
        self.reply = reply
        super().__init__(str(reply))


class UnexpectedPacket(ProtocolError):
    """A well-formed packet arrived where a transaction expected another.

    Attributes:
        packet: The offending Packet.
    """

    def __init__(self, packet) -> None:
        self.packet = packet
        super().__init__("Unexpected packet {}: {}".format(
            packet.kind.name, packet.reply))

    @property
    def reply(self):
        return self.packet.reply


class MalformedAnswer(ProtocolError):
    """A reply trailer or payload line lacked a required field."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__("Malformed answer: {}".format(reason))


# ---------------------------------------------------------------------------
# Connection target errors
# ---------------------------------------------------------------------------

class TargetError(ValueError):
    """A dict:// connection target could not be resolved."""


class InvalidTarget(TargetError):
    """Not a dict:// URL, or its port is not a number."""


class MissingParameters(TargetError):
    def __init__(self) -> None:
        super().__init__("Missing parameters")


class MissingHost(TargetError):
    def __init__(self) -> None:
        super().__init__("Missing host")


class UnknownAccess(TargetError):
    """The path names an access method other than ``d`` or ``m``."""

    def __init__(self, segment: str) -> None:
        self.segment = segment
        super().__init__("Unknown access method: {!r}".format(segment))


class Unsupported(TargetError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__("Unsupported: {}".format(reason))
