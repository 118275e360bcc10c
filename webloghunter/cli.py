"""Command-line interface: replay and detection over web logs."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from tqdm import tqdm

from webloghunter.logfiles import LogFiles, LogFilesError
from webloghunter.logparser import LogParseError
from webloghunter.requester import Requester
from webloghunter.rules import RuleError, new_detection

__all__ = ["setup_logging", "replay_logs", "detection_run", "main"]

_PACKAGE_LOGGER = "webloghunter"
logger = logging.getLogger(__name__)


def setup_logging(log_file: str | os.PathLike[str]) -> logging.Handler:
    """Append the program's log messages to a file; return the handler."""
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%Y/%m/%d %H:%M:%S"))
    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.INFO)
    return handler


def replay_logs(path: str | os.PathLike[str], host: str) -> None:
    """Send the requests found in the log files under a path to a host."""
    path = os.fspath(path)
    logger.info("Loading log files from: %s", path)
    files = LogFiles()
    try:
        files.load(path)
    except LogFilesError as exc:
        raise RuntimeError(f"failed to load log files: {exc}") from exc
    if not files.files:
        raise RuntimeError(f"no log files found in: {path}")

    logger.info("Found %d log files to process", len(files.files))
    requester = Requester(address=host)

    total = 0
    for file in files.files:
        logger.info("Processing file: %s", file)
        try:
            lines = files.parse(file)
        except (OSError, LogParseError) as exc:
            logger.info("Error parsing file %s: %s", file, exc)
            continue
        if not lines:
            logger.info("No log entries found in file: %s", file)
            continue

        logger.info("Sending %d requests from %s", len(lines), file)
        requester.load_one(lines)
        requester.send()
        total += len(lines)

    if total == 0:
        raise RuntimeError(f"no valid log entries were processed from: {path}")
    logger.info("Successfully processed %d requests from %d files", total, len(files.files))


def detection_run(path: str | os.PathLike[str], config: str | os.PathLike[str] | None = None) -> None:
    """Run every rule over the log files under a path, reporting to <path>.detection.log."""
    path = os.fspath(path)
    detection_log = f"{path}.detection.log"
    detection = new_detection(detection_log)
    with detection:
        try:
            detection.init(config or None)
        except RuleError as exc:
            raise RuleError(f"failed to initialize detection: {exc}") from exc

        logger.info("Detection logs will be written to: %s", detection_log)

        files = LogFiles()
        try:
            files.load(path)
        except LogFilesError as exc:
            raise RuntimeError(f"failed to load log files: {exc}") from exc

        for file in files.files:
            if os.path.isdir(file):
                continue
            logger.info("Analyzing file: %s", file)
            try:
                lines = files.parse(file)
            except (OSError, LogParseError) as exc:
                logger.info("Error parsing file %s: %s", file, exc)
                continue
            for line in tqdm(lines):
                detection.attack_detect(line)
                detection.scanner_detect(line)
                detection.other_detect(line)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webloghunter", description="Web log hunter for HTTP attack analysis"
    )
    parser.add_argument(
        "-l", "--log", dest="log_file", default="webloghunter.log", help="Path to log file"
    )
    commands = parser.add_subparsers(dest="command")

    replay = commands.add_parser("replay", help="Replay web logs to a target host")
    replay.add_argument(
        "-l", "--log", dest="path", default=".",
        help="Path to log file or directory (default is current directory)",
    )
    replay.add_argument("-t", "--target", required=True, help="Target host URL")

    detection = commands.add_parser("detection", help="Detect attacks in web logs")
    detection.add_argument(
        "-l", "--log", dest="path", required=True, help="Path to log file or directory"
    )
    detection.add_argument("-c", "--config", default="", help="Path to config file (optional)")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line; return the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    try:
        handler = setup_logging(args.log_file)
    except OSError as exc:
        print(f"Failed to open log file: {exc}", file=sys.stderr)
        return 1

    try:
        if args.command == "replay":
            replay_logs(args.path, args.target)
        else:
            detection_run(args.path, args.config)
    except (RuntimeError, RuleError, LogFilesError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        logging.getLogger(_PACKAGE_LOGGER).removeHandler(handler)
        handler.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())