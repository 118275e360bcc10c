"""Detection rules and the detector that applies them to log lines."""

from __future__ import annotations

import io
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, TextIO

import yaml

from webloghunter.logparser import Line

__all__ = [
    "RuleError",
    "AttackRegex",
    "ScannerRegex",
    "OtherRule",
    "Rules",
    "Detection",
    "load_rules",
    "new_detection",
    "DEFAULT_RULES_FILE",
]

logger = logging.getLogger(__name__)

DEFAULT_RULES_FILE = "rules.default.yaml"

_LOG_TIME = "%Y/%m/%d %H:%M:%S"
_SEPARATOR = "============================"

# Where a rule looks in a line: label used in reports, and the field it reads.
_PLACES: dict[str, tuple[str, Callable[[Line], str]]] = {
    "url": ("URL", lambda line: line.url),
    "useragent": ("User-Agent", lambda line: line.user_agent),
}


class RuleError(Exception):
    """Raised when rules cannot be loaded or applied."""


@dataclass
class AttackRegex:
    """A rule that marks a request as an attack."""

    id: int = 0
    regex: str = ""
    place: str = ""
    regex_id: int = 0
    type_id: int = 0
    type_name: str = ""
    level: int = 0
    level_desc: str = ""
    action_id: int = 0
    action_desc: str = ""
    action_level: int = 0
    sub_type: str = ""
    pattern: re.Pattern[str] | None = field(default=None, repr=False, compare=False)


@dataclass
class ScannerRegex:
    """A rule that recognises a scanner by its User-Agent."""

    regex: str = ""
    regex_id: int = 0
    type_id: int = 0
    type_name: str = ""
    pattern: re.Pattern[str] | None = field(default=None, repr=False, compare=False)


@dataclass
class OtherRule:
    """A rule for other requests of interest."""

    regex: str = ""
    place: str = ""
    type_name: str = ""
    pattern: re.Pattern[str] | None = field(default=None, repr=False, compare=False)


_ATTACK_KEYS = {
    "id": ("id", int),
    "regex": ("regex", str),
    "place": ("place", str),
    "regexid": ("regex_id", int),
    "typeid": ("type_id", int),
    "typename": ("type_name", str),
    "level": ("level", int),
    "leveldesc": ("level_desc", str),
    "actionid": ("action_id", int),
    "actiondesc": ("action_desc", str),
    "actionlevel": ("action_level", int),
    "subtype": ("sub_type", str),
}

_SCANNER_KEYS = {
    "regex": ("regex", str),
    "regexid": ("regex_id", int),
    "typeid": ("type_id", int),
    "typename": ("type_name", str),
}

_OTHER_KEYS = {
    "regex": ("regex", str),
    "place": ("place", str),
    "typename": ("type_name", str),
}


def _convert(value: Any, kind: type, where: str) -> Any:
    if kind is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise RuleError(f"{where}: expected an integer, got {value!r}")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise RuleError(f"{where}: expected a string, got {value!r}")


def _build(cls: type, item: Any, keys: dict[str, tuple[str, type]], section: str) -> Any:
    if not isinstance(item, dict):
        raise RuleError(f"{section}: each entry must be a mapping, got {item!r}")
    kwargs = {}
    for key, (attr, kind) in keys.items():
        value = item.get(key)
        if value is not None:
            kwargs[attr] = _convert(value, kind, f"{section}.{key}")
    return cls(**kwargs)


def _section(data: dict, name: str) -> list:
    entries = data.get(name)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise RuleError(f"{name}: expected a list, got {entries!r}")
    return entries


def _compile(rule: Any, kind: str) -> None:
    if not rule.regex:
        return
    try:
        rule.pattern = re.compile(rule.regex)
    except re.error as exc:
        raise RuleError(f"failed to compile {kind} regex {rule.regex}: {exc}") from exc


@dataclass
class Rules:
    """The full set of detection rules."""

    attack_regex: list[AttackRegex] = field(default_factory=list)
    scanner_regex: list[ScannerRegex] = field(default_factory=list)
    other: list[OtherRule] = field(default_factory=list)

    def compile_regex(self) -> None:
        """Compile every non-empty rule pattern."""
        for rule in self.attack_regex:
            _compile(rule, "attack")
        for rule in self.scanner_regex:
            _compile(rule, "scanner")
        for rule in self.other:
            _compile(rule, "other")

    @classmethod
    def from_mapping(cls, data: Any) -> Rules:
        """Build rules from a decoded configuration document."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise RuleError(f"rules document must be a mapping, got {data!r}")
        return cls(
            attack_regex=[
                _build(AttackRegex, item, _ATTACK_KEYS, "attackregex")
                for item in _section(data, "attackregex")
            ],
            scanner_regex=[
                _build(ScannerRegex, item, _SCANNER_KEYS, "scannerregex")
                for item in _section(data, "scannerregex")
            ],
            other=[
                _build(OtherRule, item, _OTHER_KEYS, "other")
                for item in _section(data, "other")
            ],
        )


def load_rules(config_file: str | os.PathLike[str]) -> Rules:
    """Read, decode and compile the rules in a YAML file."""
    try:
        text = Path(config_file).read_text(encoding="utf-8")
    except OSError as exc:
        raise RuleError(f"failed to read config file: {exc}") from exc
    try:
        rules = Rules.from_mapping(yaml.safe_load(text))
    except (yaml.YAMLError, RuleError) as exc:
        raise RuleError(f"failed to parse config file: {exc}") from exc
    try:
        rules.compile_regex()
    except RuleError as exc:
        raise RuleError(f"failed to compile regex patterns: {exc}") from exc
    return rules


@dataclass
class Detection:
    """Applies rules to log lines and reports matches to a stream."""

    rules: Rules | None = None
    stream: TextIO | None = field(default=None, repr=False, compare=False)

    def __enter__(self) -> Detection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the report stream."""
        if self.stream is not None:
            self.stream.close()
            self.stream = None

    def init(self, config_path: str | os.PathLike[str] | None = None) -> None:
        """Load rules from a file, or from the default file next to the program."""
        if config_path:
            config_file = os.fspath(config_path)
        else:
            program_dir = os.path.dirname(os.path.abspath(sys.argv[0]))
            config_file = os.path.join(program_dir, DEFAULT_RULES_FILE)
        rules = load_rules(config_file)
        self.rules = rules
        if rules.other:
            logger.info("Successfully loaded %d rules from %s", len(rules.other), config_file)

    def _loaded(self) -> Rules:
        if self.rules is None:
            raise RuleError("no rules loaded")
        return self.rules

    def _log(self, message: str) -> None:
        if self.stream is None:
            return
        self.stream.write(f"{datetime.now().strftime(_LOG_TIME)} {message}\n")
        self.stream.flush()
        try:
            os.fsync(self.stream.fileno())
        except (AttributeError, OSError, ValueError, io.UnsupportedOperation):
            pass

    def _report(self, headline: str, rule_name: str, line: Line) -> None:
        self._log(_SEPARATOR)
        self._log(headline)
        self._log(f"Rule: {rule_name}")
        self._log(f"Full request: {line}")

    def attack_detect(self, line: Line) -> bool:
        """Report the first attack rule matching the line."""
        for rule in self._loaded().attack_regex:
            place = _PLACES.get(rule.place)
            if place is None or rule.pattern is None:
                continue
            label, read = place
            value = read(line)
            if rule.pattern.search(value) is not None:
                self._report(f"Detected attack in {label}: {value}", rule.action_desc, line)
                return True
        return False

    def scanner_detect(self, line: Line) -> bool:
        """Report the first scanner rule matching the User-Agent."""
        for rule in self._loaded().scanner_regex:
            if rule.pattern is None:
                continue
            if rule.pattern.search(line.user_agent) is not None:
                self._report(
                    f"Detected scanner in User-Agent: {line.user_agent}", rule.type_name, line
                )
                return True
        return False

    def other_detect(self, line: Line) -> bool:
        """Report the first other rule matching the line."""
        for rule in self._loaded().other:
            place = _PLACES.get(rule.place)
            if place is None or rule.pattern is None:
                continue
            label, read = place
            value = read(line)
            if rule.pattern.search(value) is not None:
                self._report(f"{label}: {value}", rule.type_name, line)
                return True
        return False


def new_detection(log_file: str | os.PathLike[str]) -> Detection:
    """Create a detection whose reports are appended to a file."""
    try:
        stream = open(log_file, "a", encoding="utf-8")
    except OSError as exc:
        raise RuleError(f"failed to open log file: {exc}") from exc
    return Detection(stream=stream)