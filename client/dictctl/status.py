"""Three-digit DICT status codes.

A status code such as ``151`` decomposes into a reply kind (first digit),
a category (second digit) and a sub-code (third digit), following RFC 2229
section 3.1.  ``Status.parse("151")`` and ``str(status)`` are exact
inverses for every valid code.
"""

import enum
from typing import NamedTuple

from .exceptions import InvalidCategory, InvalidReplyKind, MissingErrNr


class ReplyKind(enum.Enum):
    POSITIVE_PRELIMINARY = "1"
    POSITIVE_COMPLETION = "2"
    POSITIVE_INTERMEDIATE = "3"
    NEGATIVE_TRANSIENT = "4"
    NEGATIVE_PERMANENT = "5"


class Category(enum.Enum):
    SYNTAX = "0"
    INFORMATION = "1"
    CONNECTION = "2"
    AUTHENTICATION = "3"
    UNSPECIFIED = "4"
    SYSTEM = "5"
    NONSTANDARD = "8"


_POSITIVE_KINDS = (
    ReplyKind.POSITIVE_PRELIMINARY,
    ReplyKind.POSITIVE_COMPLETION,
    ReplyKind.POSITIVE_INTERMEDIATE,
)


class Status(NamedTuple):
    """A decoded status triple ``(kind, category, subcode)``."""

    kind: ReplyKind
    category: Category
    subcode: int

    @classmethod
    def parse(cls, text: str) -> "Status":
        """Decode a three-character status string.

        Raises InvalidReplyKind, InvalidCategory or MissingErrNr (all
        subclasses of InvalidStatus) when a digit is out of range or
        missing.  The sub-code digit is checked before the other two, so
        any two-character input fails with MissingErrNr.
        """
        if len(text) < 1:
            raise InvalidReplyKind(text)
        if len(text) < 2:
            raise InvalidCategory(text)
        digit = text[2:3]
        if len(digit) != 1 or digit not in "0123456789":
            raise MissingErrNr(text)

        try:
            kind = ReplyKind(text[0])
        except ValueError:
            raise InvalidReplyKind(text)
        try:
            category = Category(text[1])
        except ValueError:
            raise InvalidCategory(text)
        return cls(kind, category, int(digit))

    def format(self) -> str:
        return "{}{}{}".format(self.kind.value, self.category.value,
                               self.subcode)

    def __str__(self) -> str:
        return self.format()

    @property
    def code(self) -> int:
        """The status as an integer, e.g. 250."""
        return int(self.format())

    def is_positive(self) -> bool:
        return self.kind in _POSITIVE_KINDS

    def is_preliminary(self) -> bool:
        return self.kind is ReplyKind.POSITIVE_PRELIMINARY

    def is_start_of_session(self) -> bool:
        """True only for 220, the banner sent when a client connects."""
        return self == START_OF_SESSION


START_OF_SESSION = Status(ReplyKind.POSITIVE_COMPLETION, Category.CONNECTION, 0)
