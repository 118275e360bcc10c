# webloghunter

A command-line tool for Apache access logs in the combined format. It does
two jobs:

- **detection**: check log files against a YAML rule set and report likely
  attacks, scanners and other requests of interest;
- **replay**: resend the logged requests to a target host, for example to
  exercise a test instance of a web application or a WAF.

## Installation

```
pip install .
```

Tests need the `test` extra:

```
pip install ".[test]"
pytest
```

## Usage

Running `webloghunter` with no command prints the help. Both commands exit
with status 0 on success; on failure they print `Error: <message>` to
standard error and exit with status 1.

### Detecting attacks

```
webloghunter detection --log /var/log/apache2/access.log --config rules.yaml
```

`--log` (`-l`, required) names a single file or a directory. A directory is
walked recursively, in name order, and every entry in it that is not a
directory is analysed. Findings are appended to `<log path>.detection.log`,
and a progress bar shows how far each file has got.

Without `--config` (`-c`), the tool reads `rules.default.yaml` from the
directory of the running program. No such file is installed with the
package; supply your own.

Each log line is checked three times:

1. against the `attackregex` rules, whose `place` is `url` or `useragent`;
2. against the `scannerregex` rules, which always look at the User-Agent;
3. against the `other` rules, whose `place` is `url` or `useragent`.

Rules with any other `place` are ignored. Within each check, the first rule
whose pattern is found anywhere in the field is reported and the rest of that
check is skipped. A report looks like:

```
2024/05/01 12:00:00 ============================
2024/05/01 12:00:00 Detected attack in URL: /item?id=1 union select 1
2024/05/01 12:00:00 Rule: SQL injection
2024/05/01 12:00:00 Full request: <host, time, method, request, status, bytes, referer, user agent, URL, tab separated>
```

Attack reports name the rule's `actiondesc`; scanner and other reports name
its `typename`.

### Rule file

```yaml
attackregex:
  - id: 1
    regex: "(?i)union\\s+select"
    place: url
    regexid: 1
    typeid: 1
    typename: sqli
    level: 3
    leveldesc: high
    actionid: 1
    actiondesc: SQL injection
    actionlevel: 1
    subtype: union
scannerregex:
  - regex: "(?i)sqlmap|nikto"
    regexid: 1
    typeid: 2
    typename: scanner
other:
  - regex: "\\.bak$"
    place: url
    typename: backup file
```

Patterns use Python regular-expression syntax. Every section and key is
optional. Integer fields must be integers. Rules with an empty `regex` are not
compiled and never match. A file that cannot be read or decoded, or that holds
an invalid pattern, makes loading fail.

### Replaying requests

```
webloghunter replay --log ./logs --target http://localhost:8000
```

`--target` (`-t`) is required; `--log` (`-l`) defaults to the current
directory. Each logged `GET` or `POST` is sent to the target address followed
by the logged URL, with the logged User-Agent and Referer as headers and a
30-second timeout. Requests with the same URL, User-Agent and Referer are sent
only once per run. Requests that fail are logged and skipped. The command
fails if no log entries were processed at all.

### Program log

Both commands append their own progress messages to `webloghunter.log` in the
current directory. Choose another file with the global option, given before
the command:

```
webloghunter --log run.log detection --log access.log
```

## Library use

```python
from webloghunter.logparser import parse
from webloghunter.rules import new_detection

with new_detection("access.log.detection.log") as detection:
    detection.init("rules.yaml")
    for line in parse("access.log"):
        detection.attack_detect(line)
        detection.scanner_detect(line)
        detection.other_detect(line)
```

The modules are:

- `webloghunter.logparser`: `Line`, `parse_line`, `read_lines`, `parse` and
  `LogParseError`;
- `webloghunter.logfiles`: `LogFiles`, `get_files`, `is_dir` and
  `LogFilesError`;
- `webloghunter.rules`: `Rules`, `AttackRegex`, `ScannerRegex`, `OtherRule`,
  `Detection`, `load_rules`, `new_detection` and `RuleError`;
- `webloghunter.requester`: `Requester` and `Part`;
- `webloghunter.cli`: `main`, `replay_logs`, `detection_run` and
  `setup_logging`.

## Limitations

- Only the Apache combined log format is understood. A single line that does
  not match it makes the whole file be skipped, with the error written to the
  program log.
- Replay sends only `GET` and `POST` requests, and POST requests are sent
  without a body, since access logs do not record one. Other methods are
  skipped.
- No rule set is shipped; detection needs a rule file.