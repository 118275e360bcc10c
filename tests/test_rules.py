import io
import sys

import pytest

from webloghunter.logparser import Line
from webloghunter.rules import (
    AttackRegex,
    Detection,
    OtherRule,
    RuleError,
    Rules,
    ScannerRegex,
    load_rules,
    new_detection,
)

RULES_YAML = """\
attackregex:
  - id: 1
    regex: "union\\\\s+select"
    place: url
    regexid: 7
    typename: sqli
    actiondesc: SQL injection
  - id: 2
    regex: "<script"
    place: useragent
    actiondesc: XSS in agent
scannerregex:
  - regex: "(?i)sqlmap"
    typename: sqlmap
other:
  - regex: "\\\\.bak$"
    place: url
    typename: backup file
"""


@pytest.fixture
def rules_file(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(RULES_YAML, encoding="utf-8")
    return path


@pytest.fixture
def detection(rules_file):
    return Detection(rules=load_rules(rules_file), stream=io.StringIO())


def test_load_rules_reads_all_sections(rules_file):
    rules = load_rules(rules_file)
    assert [rule.id for rule in rules.attack_regex] == [1, 2]
    assert rules.attack_regex[0].regex_id == 7
    assert rules.attack_regex[0].action_desc == "SQL injection"
    assert rules.scanner_regex[0].type_name == "sqlmap"
    assert rules.other[0].place == "url"
    assert rules.attack_regex[0].pattern.search("a union  select b") is not None


def test_from_mapping_missing_sections_are_empty():
    rules = Rules.from_mapping({"other": [{"regex": "x", "place": "url"}]})
    assert rules.attack_regex == []
    assert rules.scanner_regex == []
    assert rules.other == [OtherRule(regex="x", place="url")]


def test_from_mapping_none_gives_empty_rules():
    assert Rules.from_mapping(None) == Rules()


def test_from_mapping_rejects_bad_integer():
    with pytest.raises(RuleError):
        Rules.from_mapping({"attackregex": [{"id": "abc"}]})


def test_from_mapping_rejects_non_list_section():
    with pytest.raises(RuleError):
        Rules.from_mapping({"scannerregex": {"regex": "x"}})


def test_compile_regex_skips_empty_patterns():
    rules = Rules(scanner_regex=[ScannerRegex(regex=""), ScannerRegex(regex="nikto")])
    rules.compile_regex()
    assert rules.scanner_regex[0].pattern is None
    assert rules.scanner_regex[1].pattern.pattern == "nikto"


def test_compile_regex_reports_bad_pattern():
    rules = Rules(attack_regex=[AttackRegex(regex="(unclosed")])
    with pytest.raises(RuleError, match="failed to compile attack regex"):
        rules.compile_regex()


def test_load_rules_missing_file(tmp_path):
    with pytest.raises(RuleError, match="failed to read config file"):
        load_rules(tmp_path / "absent.yaml")


def test_load_rules_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("attackregex: [unclosed", encoding="utf-8")
    with pytest.raises(RuleError, match="failed to parse config file"):
        load_rules(path)


def test_load_rules_bad_regex(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("other:\n  - regex: '('\n    place: url\n", encoding="utf-8")
    with pytest.raises(RuleError, match="failed to compile regex patterns"):
        load_rules(path)


def test_load_rules_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_rules(path) == Rules()


def test_attack_detect_in_url(detection):
    line = Line(url="/q?x=union select", user_agent="Mozilla/5.0")
    assert detection.attack_detect(line) is True
    out = detection.stream.getvalue().splitlines()
    assert len(out) == 4
    assert out[0].endswith("============================")
    assert out[1].endswith("Detected attack in URL: /q?x=union select")
    assert out[2].endswith("Rule: SQL injection")
    assert out[3].endswith(f"Full request: {line}")


def test_attack_detect_in_user_agent(detection):
    line = Line(url="/", user_agent="<script>alert(1)</script>")
    assert detection.attack_detect(line) is True
    assert "Detected attack in User-Agent: <script>alert(1)</script>" in detection.stream.getvalue()


def test_attack_detect_no_match(detection):
    assert detection.attack_detect(Line(url="/index.html", user_agent="Mozilla/5.0")) is False
    assert detection.stream.getvalue() == ""


def test_attack_detect_ignores_unknown_place():
    rules = Rules(attack_regex=[AttackRegex(regex="a", place="referer")])
    rules.compile_regex()
    found = Detection(rules=rules, stream=io.StringIO())
    assert found.attack_detect(Line(url="a", user_agent="a", referer="a")) is False


def test_only_first_matching_rule_reports():
    rules = Rules(
        attack_regex=[
            AttackRegex(regex="admin", place="url", action_desc="first"),
            AttackRegex(regex="adm", place="url", action_desc="second"),
        ]
    )
    rules.compile_regex()
    found = Detection(rules=rules, stream=io.StringIO())
    assert found.attack_detect(Line(url="/admin")) is True
    text = found.stream.getvalue()
    assert "Rule: first" in text
    assert "Rule: second" not in text


def test_scanner_detect(detection):
    assert detection.scanner_detect(Line(user_agent="SQLMap/1.5")) is True
    assert "Detected scanner in User-Agent: SQLMap/1.5" in detection.stream.getvalue()
    assert "Rule: sqlmap" in detection.stream.getvalue()


def test_other_detect(detection):
    assert detection.other_detect(Line(url="/site.bak")) is True
    assert "URL: /site.bak" in detection.stream.getvalue()
    assert detection.other_detect(Line(url="/site.bak.txt")) is False


def test_detect_without_rules_raises():
    with pytest.raises(RuleError):
        Detection().scanner_detect(Line())


def test_new_detection_appends_to_file(tmp_path, rules_file):
    log_path = tmp_path / "out.log"
    log_path.write_text("existing\n", encoding="utf-8")
    with new_detection(log_path) as found:
        found.init(rules_file)
        assert found.other_detect(Line(url="/x.bak")) is True
    text = log_path.read_text(encoding="utf-8")
    assert text.startswith("existing\n")
    assert "URL: /x.bak" in text


def test_new_detection_unopenable(tmp_path):
    with pytest.raises(RuleError, match="failed to open log file"):
        new_detection(tmp_path / "missing" / "out.log")


def test_init_missing_config(tmp_path):
    with pytest.raises(RuleError, match="failed to read config file"):
        Detection().init(tmp_path / "nope.yaml")


def test_init_uses_default_file_next_to_program(tmp_path, monkeypatch):
    (tmp_path / "rules.default.yaml").write_text(RULES_YAML, encoding="utf-8")
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "webloghunter")])
    found = Detection()
    found.init()
    assert [rule.type_name for rule in found.rules.other] == ["backup file"]