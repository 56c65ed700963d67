"""Centralized logging configuration for kindred.

The CLI calls configure_logging() before any command runs; pass
log_to_file to also keep JSONL logs under $KINDRED_HOME/logs.

Logging Levels:
- DEBUG: Scoring details, per-candidate decisions, LLM token counts
- INFO: Records created/merged, relativizations applied
- WARNING: Recoverable issues (store write failed, extraction timed out)
- ERROR: Failures that affect operation

Guidelines:
- Messages are snake_case event names; details go in ``extra=``
- LLM calls: Log at DEBUG level (too noisy for INFO)
- Never log raw message text at INFO; excerpts are personal data
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TextIO

DEFAULT_LOG_RETENTION_DAYS = 7

# Group 1 of each pattern is the secret; the rest of the match is kept
DEFAULT_REDACT_PATTERNS: list[str] = [
    r"\b(sk-[A-Za-z0-9_-]{20,})\b",
    r"\b[A-Z0-9_]+(?:KEY|TOKEN|SECRET|PASSWORD|PASSWD)\s*[=:]\s*([^\s\"']{8,})",
    r"\bBearer\s+([A-Za-z0-9._\-+=]{20,})\b",
    # user:password@ in database URLs
    r"\b[a-z+]+://[^:/\s]+:([^@/\s]{4,})@",
]

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Third-party loggers that are too noisy at INFO level
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "anthropic",
    "openai",
    "aiosqlite",
    "sqlalchemy.engine",
]

# Attributes every LogRecord has; anything else came from ``extra=``
_RESERVED_ATTRS = frozenset(
    logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=None, exc_info=None
    ).__dict__
) | {"message", "asctime", "component"}


def _mask(secret: str) -> str:
    """Long secrets keep their first and last four characters."""
    if len(secret) < 12:
        return "***"
    return f"{secret[:4]}...{secret[-4:]}"


@dataclass
class SecretRedactor:
    """Masks credentials in log text while keeping lines debuggable."""

    patterns: list[re.Pattern[str]] = field(
        default_factory=lambda: [
            re.compile(p, re.IGNORECASE) for p in DEFAULT_REDACT_PATTERNS
        ]
    )
    enabled: bool = True

    def redact(self, text: str) -> str:
        if not self.enabled or not text:
            return text
        for pattern in self.patterns:
            text = pattern.sub(self._replace, text)
        return text

    @staticmethod
    def _replace(match: re.Match[str]) -> str:
        secret = match.group(1)
        # Already masked by an earlier pattern
        if "..." in secret:
            return match.group(0)
        start, end = match.span(1)
        offset = match.start(0)
        whole = match.group(0)
        return whole[: start - offset] + _mask(secret) + whole[end - offset :]


_redactor = SecretRedactor()


def prune_old_logs(
    logs_dir: Path,
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    suffix: str = ".jsonl",
) -> int:
    """Delete ``*suffix`` files older than ``retention_days``; returns the count."""
    if not logs_dir.is_dir():
        return 0

    cutoff = (datetime.now(UTC) - timedelta(days=retention_days)).timestamp()
    deleted = 0
    for entry in logs_dir.glob(f"*{suffix}"):
        try:
            if entry.is_file() and entry.stat().st_mtime < cutoff:
                entry.unlink()
                deleted += 1
        except OSError:
            continue
    return deleted


def component_of(logger_name: str) -> str:
    """Map a logger name to its component.

    - kindred.people.resolution -> people
    - kindred.store.sql -> store
    - httpx -> httpx
    """
    head, _, rest = logger_name.partition(".")
    if head == "kindred" and rest:
        return rest.split(".", 1)[0]
    return head


def extra_fields(record: logging.LogRecord) -> dict[str, object]:
    """Collect the structured fields passed through ``extra=``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONLHandler(logging.Handler):
    """One JSON object per line in ``<logs_dir>/YYYY-MM-DD.jsonl`` (UTC days).

    Opening a new day's file also prunes files past the retention period.
    """

    def __init__(
        self,
        logs_dir: Path,
        retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    ):
        super().__init__()
        logs_dir.mkdir(parents=True, exist_ok=True)
        self._logs_dir = logs_dir
        self._retention_days = retention_days
        self._day: str | None = None
        self._file: TextIO | None = None

    def _stream(self) -> TextIO:
        day = datetime.now(UTC).strftime("%Y-%m-%d")
        if self._file is None or day != self._day:
            if self._file is not None:
                self._file.close()
            self._day = day
            self._file = (self._logs_dir / f"{day}.jsonl").open("a", encoding="utf-8")
            prune_old_logs(self._logs_dir, self._retention_days)
        return self._file

    def build_entry(self, record: logging.LogRecord) -> dict[str, object]:
        entry: dict[str, object] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "component": component_of(record.name),
            "logger": record.name,
            "message": _redactor.redact(record.getMessage()),
        }
        if record.exc_info:
            formatter = self.formatter or logging.Formatter()
            entry["exception"] = _redactor.redact(
                formatter.formatException(record.exc_info)
            )
        if extra := extra_fields(record):
            # Redact the serialized form so secrets nested in values are caught
            redacted = _redactor.redact(json.dumps(extra, default=str))
            try:
                entry["extra"] = json.loads(redacted)
            except json.JSONDecodeError:
                entry["extra"] = {"_redacted_raw": redacted}
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stream = self._stream()
            stream.write(json.dumps(self.build_entry(record)) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        super().close()


class ComponentFormatter(logging.Formatter):
    """Formatter that exposes ``%(component)s`` and appends extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        record.component = component_of(record.name)
        line = super().format(record)
        if extra := extra_fields(record):
            line += " | " + " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
        return _redactor.redact(line)


def _console_handler(use_rich: bool) -> logging.Handler:
    if not use_rich:
        handler = logging.StreamHandler()
        handler.setFormatter(
            ComponentFormatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        return handler

    from rich.logging import RichHandler

    rich_handler = RichHandler(
        rich_tracebacks=False, show_path=False, show_time=True, markup=False
    )
    rich_handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    return rich_handler


def configure_logging(
    level: str | None = None,
    use_rich: bool = False,
    log_to_file: bool = False,
) -> None:
    """Configure logging for kindred.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
            If None, uses KINDRED_LOG_LEVEL env var or INFO.
        use_rich: Use Rich handler for colorful console output.
        log_to_file: Also write logs to JSONL files in the logs directory.
    """
    from kindred.config.paths import get_logs_path

    level = (level or os.environ.get("KINDRED_LOG_LEVEL") or "INFO").upper()
    if level not in LEVELS:
        level = "INFO"

    handlers = [_console_handler(use_rich)]
    if log_to_file:
        handlers.append(JSONLHandler(get_logs_path()))

    logging.basicConfig(level=getattr(logging, level), handlers=handlers, force=True)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
