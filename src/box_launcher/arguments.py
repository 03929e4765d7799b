"""Command-line token parsing and rewriting.

Tokens beginning with ``-`` are options (``-name`` or ``-name=value``);
everything else is positional. ``ArgumentList`` keeps the raw tokens so
consumed launcher flags can be stripped, and collaborator-specific flags
appended, before the remainder is forwarded downstream.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from box_launcher.models import OptionMap, PositionalArgs

OPTION_PREFIX = "-"


def parse_options(tokens: Iterable[str]) -> tuple[OptionMap, PositionalArgs]:
    """Split raw tokens into an option map and positional arguments.

    Option names are lower-cased; a bare flag maps to ``""``. Later
    duplicates overwrite earlier ones. Empty tokens are ignored.
    """
    options: OptionMap = {}
    positionals: PositionalArgs = []
    for token in tokens:
        raw = token.strip()
        if not raw:
            continue
        if not raw.startswith(OPTION_PREFIX):
            positionals.append(raw)
            continue

        body = raw[len(OPTION_PREFIX):].strip()
        name, sep, value = body.partition("=")
        options[name.strip().lower()] = value.strip() if sep else ""
    return options, positionals


def _matches(token: str, prefix: str, ignore_case: bool) -> bool:
    if ignore_case:
        return token.lower().startswith(prefix.lower())
    return token.startswith(prefix)


class ArgumentList:
    """Mutable list of raw tokens with prefix-based rewriting."""

    def __init__(self, tokens: Iterable[str] = ()):
        self.tokens: list[str] = [token.strip() for token in tokens if token.strip()]

    def __iter__(self):
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __repr__(self) -> str:
        return f"ArgumentList({self.tokens!r})"

    def contains_prefix(self, prefix: str, *, ignore_case: bool = False) -> bool:
        return any(_matches(token, prefix, ignore_case) for token in self.tokens)

    def remove_prefixed(self, prefix: str, *, ignore_case: bool = False) -> "ArgumentList":
        """Delete every token starting with *prefix*."""
        self.tokens = [t for t in self.tokens if not _matches(t, prefix, ignore_case)]
        return self

    def remove_then_append(
        self,
        prefix: str,
        replacement: Sequence[str],
        *,
        ignore_case: bool = False,
    ) -> "ArgumentList":
        """Delete tokens starting with *prefix*, then append *replacement*."""
        self.remove_prefixed(prefix, ignore_case=ignore_case)
        self.tokens.extend(replacement)
        return self

    def insert(self, index: int, token: str) -> None:
        self.tokens.insert(index, token)

    def remove_at(self, index: int) -> str:
        return self.tokens.pop(index)

    def index_of(self, token: str) -> int:
        """Return the index of *token*, or -1 when absent."""
        try:
            return self.tokens.index(token)
        except ValueError:
            return -1

    def options(self) -> OptionMap:
        return parse_options(self.tokens)[0]

    def positionals(self) -> PositionalArgs:
        return parse_options(self.tokens)[1]

    def joined(self, separator: str = " ") -> str:
        return separator.join(self.tokens)

    def copy(self) -> "ArgumentList":
        return ArgumentList(self.tokens)
