"""Parser for ``WWW-Authenticate`` / ``Proxy-Authenticate`` challenge headers.

A challenge header lists one or more challenges (:rfc:`7235` section 4.1)::

    WWW-Authenticate: Newauth realm="apps", type=1, title="Login to \\"apps\\"",
                      Basic realm="simple"

Each challenge is a scheme token followed either by a ``token68`` blob or by
a comma-separated list of ``name=value`` parameters, where a value is a token
or a quoted string. Because challenges and parameters share the comma as a
separator, a new challenge starts at the first token that is not followed by
``=``.

The parser is lenient: a fragment it cannot make sense of is skipped instead
of raising, so one malformed challenge never hides the well-formed ones.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

import httpx

from restauth.auth.base import AuthHeader

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_TOKEN_RE = re.compile(_TOKEN)
_TOKEN68_RE = re.compile(r"[A-Za-z0-9\-._~+/]+=*")
_QUOTED_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')
_ESCAPE_RE = re.compile(r"\\(.)")
_WS = " \t"


@dataclass(frozen=True)
class ChallengeEntry:
    """One parsed challenge.

    Attributes:
        scheme: The authentication scheme as sent by the server (e.g. ``"Basic"``).
        params: Auth parameters with lower-cased names (e.g. ``{"realm": "api"}``).
        token68: The ``token68`` blob for schemes that use one instead of params.
    """

    scheme: str
    params: dict[str, str] = field(default_factory=dict)
    token68: Optional[str] = None

    @property
    def realm(self) -> Optional[str]:
        return self.params.get("realm")

    def matches(self, scheme: str) -> bool:
        """Case-insensitive comparison of the scheme name."""
        return self.scheme.casefold() == scheme.casefold()


class _Scanner:
    """Cursor over a header value with whitespace-aware helpers."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in _WS:
            self.pos += 1

    def skip_commas(self) -> None:
        while True:
            self.skip_ws()
            if self.peek() != ",":
                return
            self.pos += 1

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def at_end(self) -> bool:
        self.skip_ws()
        return self.pos >= len(self.text)

    def match(self, pattern: re.Pattern[str]) -> Optional[re.Match[str]]:
        m = pattern.match(self.text, self.pos)
        if m:
            self.pos = m.end()
        return m

    def skip_to_comma(self) -> None:
        """Recover from garbage by jumping past the next unquoted comma."""
        while self.pos < len(self.text):
            if self.peek() == '"':
                if self.match(_QUOTED_RE) is None:
                    self.pos = len(self.text)
                continue
            if self.peek() == ",":
                self.pos += 1
                return
            self.pos += 1


def _read_param(scanner: _Scanner) -> Optional[tuple[str, str]]:
    """Try to read ``name = value`` at the cursor; restore the cursor on failure."""
    start = scanner.pos
    scanner.skip_ws()
    name = scanner.match(_TOKEN_RE)
    if name is None:
        scanner.pos = start
        return None
    scanner.skip_ws()
    if scanner.peek() != "=":
        scanner.pos = start
        return None
    scanner.pos += 1
    scanner.skip_ws()
    if scanner.peek() == '"':
        quoted = scanner.match(_QUOTED_RE)
        if quoted is None:
            scanner.pos = start
            return None
        value = _ESCAPE_RE.sub(r"\1", quoted.group(1))
    else:
        token = scanner.match(_TOKEN_RE)
        if token is None:
            scanner.pos = start
            return None
        value = token.group(0)
    return name.group(0).lower(), value


def _read_token68(scanner: _Scanner) -> Optional[str]:
    """Read a token68 that must be followed by a comma or the end of the value."""
    start = scanner.pos
    m = scanner.match(_TOKEN68_RE)
    if m is None:
        return None
    scanner.skip_ws()
    if scanner.peek() not in (",", ""):
        scanner.pos = start
        return None
    return m.group(0)


def parse_challenge_header(value: str) -> list[ChallengeEntry]:
    """Parse a challenge header value into its challenges, in header order.

    Example::

        >>> [c.scheme for c in parse_challenge_header('Digest realm="a", Basic realm="b"')]
        ['Digest', 'Basic']
    """
    scanner = _Scanner(value)
    entries: list[ChallengeEntry] = []

    while True:
        scanner.skip_commas()
        if scanner.at_end():
            break
        scheme = scanner.match(_TOKEN_RE)
        if scheme is None:
            scanner.skip_to_comma()
            continue

        had_space = scanner.peek() in _WS
        scanner.skip_ws()
        params: dict[str, str] = {}
        token68: Optional[str] = None

        if had_space and scanner.peek() not in (",", ""):
            first = _read_param(scanner)
            if first is not None:
                params[first[0]] = first[1]
                # Further params follow after commas; stop at the next scheme.
                while True:
                    mark = scanner.pos
                    scanner.skip_commas()
                    if scanner.at_end():
                        break
                    param = _read_param(scanner)
                    if param is None:
                        scanner.pos = mark
                        break
                    params.setdefault(param[0], param[1])
            else:
                token68 = _read_token68(scanner)
                if token68 is None:
                    # Neither params nor token68: keep the bare scheme, drop the rest.
                    scanner.skip_to_comma()

        entries.append(ChallengeEntry(scheme.group(0), params, token68))

    return entries


def get_challenges(
    response: httpx.Response,
    header: AuthHeader = AuthHeader.WWW_AUTHENTICATE,
) -> list[ChallengeEntry]:
    """Return every challenge carried by *response* in the given header."""
    entries: list[ChallengeEntry] = []
    for value in response.headers.get_list(header.value):
        entries.extend(parse_challenge_header(value))
    return entries
