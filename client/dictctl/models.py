"""Value types carried by DICT packets.

Databases, strategies, definitions and matches are plain immutable
records.  The well-known sentinels (``Database.all()``,
``Strategy.default()`` ...) are factory methods returning fresh values.
"""

from typing import List, NamedTuple, Tuple


class Database(NamedTuple):
    name: str
    desc: str = ""

    @classmethod
    def all(cls) -> "Database":
        """Search every database (``*``)."""
        return cls("*", "All databases")

    @classmethod
    def first(cls) -> "Database":
        """Search every database, stopping at the first hit (``!``)."""
        return cls("!", "All databases (first match)")

    @classmethod
    def default(cls) -> "Database":
        return cls.first()

    def __str__(self) -> str:
        return self.name


class Strategy(NamedTuple):
    name: str
    desc: str = ""

    @classmethod
    def default(cls) -> "Strategy":
        """Let the server pick its default strategy (``.``)."""
        return cls(".", "Server default")

    @classmethod
    def exact(cls) -> "Strategy":
        return cls("exact")

    @classmethod
    def prefix(cls) -> "Strategy":
        return cls("prefix")

    def __str__(self) -> str:
        return self.name


class Definition(NamedTuple):
    source: Database
    text: Tuple[str, ...]

    @classmethod
    def empty(cls) -> "Definition":
        """Placeholder shown before any query has been made."""
        return cls(Database.all(), ("No definition",))

    @classmethod
    def from_lines(cls, source: Database, lines: List[str]) -> "Definition":
        return cls(source, tuple(lines))


class Match(NamedTuple):
    source: Database
    word: str
