"""Replaying logged requests against a target host."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

import requests
from tqdm import tqdm

from webloghunter.logparser import Line

__all__ = ["Part", "Requester"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Part:
    """The parts of a request that make it distinct for replay."""

    url: str
    user_agent: str
    referer: str


@dataclass
class Requester:
    """Sends logged GET and POST requests to a target address."""

    address: str
    lines: list[Line] = field(default_factory=list)
    histories: list[Part] = field(default_factory=list)
    timeout: float | None = 30.0

    def load(self, lines: Iterable[Line]) -> None:
        """Append lines to those already loaded."""
        self.lines.extend(lines)

    def load_one(self, lines: Iterable[Line]) -> None:
        """Replace the loaded lines with a new, non-empty set."""
        lines = list(lines)
        if not lines:
            raise ValueError("no log lines provided")
        self.lines = lines

    def send(self) -> None:
        """Send each loaded request not already sent; failures are logged."""
        seen = set(self.histories)
        with requests.Session() as session, tqdm(total=len(self.lines)) as bar:
            for line in self.lines:
                part = Part(url=line.url, user_agent=line.user_agent, referer=line.referer)
                if part in seen:
                    continue
                seen.add(part)
                self.histories.append(part)
                bar.update(1)

                if line.method == "GET":
                    call = session.get
                elif line.method == "POST":
                    call = session.post
                else:
                    continue

                headers = {"User-Agent": line.user_agent, "Referer": line.referer}
                try:
                    response = call(self.address + line.url, headers=headers, timeout=self.timeout)
                except requests.RequestException as exc:
                    logger.warning("%s", exc)
                    continue
                response.close()