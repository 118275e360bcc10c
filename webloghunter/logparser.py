"""Parsing of Apache combined-format access log lines."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

__all__ = ["Line", "LogParseError", "parse_line", "read_lines", "parse"]

# A quoted field body: any character except a quote, unless the quote is
# escaped by a preceding backslash.
_QUOTED = r'(?:[^"]|(?<=\\)")*'

_LINE_RE = re.compile(
    r"^(\S+)\s"  # 1) remote host
    r"\S+\s+"  # remote logname
    r"(?:\S+\s+)+"  # remote user
    r"\[([^\]]+)\]\s"  # 2) date
    r'"(\S*)\s?'  # 3) method
    rf"(?:({_QUOTED})\s"  # 4) URL
    r'([^"]*)"\s|'  # 5) protocol
    rf'({_QUOTED})"\s)'  # 6) or a URL with no protocol
    r"(\S+)\s"  # 7) status code
    r"(\S+)\s"  # 8) bytes
    rf'"({_QUOTED})"\s'  # 9) referrer
    r'"(.*)"\Z',  # 10) user agent
    re.ASCII,
)

_TIME_RE = re.compile(
    r"(\d{2})/([A-Za-z]{3})/(\d{4}):(\d{1,2}):(\d{2}):(\d{2}) ([+-])(\d{2})(\d{2})\Z",
    re.ASCII,
)

_MONTHS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun",
         "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}

_INTEGER_RE = re.compile(r"[+-]?\d+\Z", re.ASCII)

_ZERO_TIME = "0001-01-01 00:00:00 +0000 UTC"


class LogParseError(ValueError):
    """Raised when a log line does not have the expected format."""


@dataclass
class Line:
    """One request taken from an access log."""

    remote_host: str = ""
    time: datetime | None = None
    method: str = ""
    request: str = ""
    status: int = 0
    bytes: int = 0
    referer: str = ""
    user_agent: str = ""
    url: str = ""

    def __str__(self) -> str:
        when = self.time.strftime("%Y-%m-%d %H:%M:%S %z") if self.time else _ZERO_TIME
        return "\t".join(
            (
                self.remote_host,
                when,
                self.method,
                self.request,
                str(self.status),
                str(self.bytes),
                self.referer,
                self.user_agent,
                self.url,
            )
        )


def _parse_time(value: str) -> datetime | None:
    match = _TIME_RE.match(value)
    if match is None:
        return None
    day, month_name, year, hour, minute, second, sign, off_h, off_m = match.groups()
    month = _MONTHS.get(month_name.lower())
    if month is None:
        return None
    offset = timedelta(hours=int(off_h), minutes=int(off_m))
    if sign == "-":
        offset = -offset
    try:
        return datetime(
            int(year), month, int(day), int(hour), int(minute), int(second),
            tzinfo=timezone(offset),
        )
    except ValueError:
        return None


def _to_int(value: str) -> int:
    return int(value) if _INTEGER_RE.match(value) else 0


def parse_line(text: str) -> Line:
    """Parse a single access log line."""
    match = _LINE_RE.match(text)
    if match is None:
        raise LogParseError(f"unrecognised log line: {text!r}")
    (host, when, method, url, protocol, alt_url,
     status, size, referer, agent) = match.groups(default="")
    if not url and alt_url:
        url = alt_url
    return Line(
        remote_host=host,
        time=_parse_time(when),
        method=method,
        request=f"{method} {match.group(4) or ''} {protocol}",
        status=_to_int(status),
        bytes=_to_int(size),
        referer=referer,
        user_agent=agent,
        url=url,
    )


def read_lines(path: str | os.PathLike[str]) -> list[str]:
    """Return the lines of a file without their line terminators."""
    with open(path, encoding="utf-8", errors="surrogateescape", newline="") as handle:
        content = handle.read()
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse(path: str | os.PathLike[str]) -> list[Line]:
    """Parse every line of an access log file."""
    items = []
    for number, text in enumerate(read_lines(path), start=1):
        try:
            items.append(parse_line(text))
        except LogParseError as exc:
            raise LogParseError(f"{os.fspath(path)}:{number}: {exc}") from None
    return items