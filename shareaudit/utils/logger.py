"""
Logging for shareaudit

Diagnostics go to stderr (or a log file) so the CSV can be streamed to
stdout. Permission records are logged at the "data" level (WARNING) and
tagged with is_data, which lets a data-only log file keep nothing else.
"""

import hashlib
import json
import logging
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Optional

LOGGER_NAME = "shareaudit"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "data": logging.WARNING,
}

RECORD_FIELDS = (
    "share_path",
    "principal",
    "rights",
    "access_type",
    "inheritance",
    "is_inherited",
    "record_id",
)


class DataOnlyFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, "is_data", False)


class Colors:
    RED = '\033[91m'
    YELLOW = '\033[93m'
    GREEN = '\033[92m'
    GRAY = '\033[37m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


def _colors_enabled(logger: logging.Logger) -> bool:
    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return False
    return sys.stderr.isatty()


class ShareAuditFormatter(logging.Formatter):
    LEVEL_COLORS = {
        'DEBUG': Colors.GRAY,
        'INFO': Colors.GREEN,
        'WARNING': Colors.YELLOW,
        'ERROR': Colors.RED,
        'CRITICAL': Colors.RED + Colors.BOLD,
    }

    # permission records are colored by access type, not by level
    ACCESS_COLORS = {
        'Allow': Colors.GREEN,
        'Deny': Colors.RED + Colors.BOLD,
    }

    def __init__(self, logger: logging.Logger):
        super().__init__()
        self.logger = logger

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        message = record.getMessage()

        if getattr(record, "is_data", False):
            tag = record.access_type
            palette = self.ACCESS_COLORS
        else:
            tag = record.levelname
            palette = self.LEVEL_COLORS

        if not _colors_enabled(self.logger):
            return f"[{stamp}] [{tag}] {message}"

        color = palette.get(tag, '')
        return f"{Colors.GRAY}[{stamp}]{Colors.RESET} {color}[{tag}]{Colors.RESET} {message}"


class ShareAuditJSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        data.update(
            (field, getattr(record, field))
            for field in RECORD_FIELDS
            if hasattr(record, field)
        )
        return json.dumps(data)


def setup_logging(
        log_level: str = "info",
        log_to_file: bool = False,
        log_file_path: Optional[str] = None,
        log_to_console: bool = True,
        log_type: str = "plain",
) -> logging.Logger:
    """Configure the shareaudit logger, replacing any previous handlers."""
    level = LEVELS.get(log_level.lower(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    if log_to_console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(level)
        ch.setFormatter(ShareAuditFormatter(logger))
        logger.addHandler(ch)

    if log_to_file and log_file_path:
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file_path, mode="a")

        # "data" keeps records only, whatever their level
        if log_level.lower() == "data":
            fh.setLevel(logging.DEBUG)
            fh.addFilter(DataOnlyFilter())
        else:
            fh.setLevel(level)

        if log_type == "json":
            fh.setFormatter(ShareAuditJSONFormatter())
        else:
            fh.setFormatter(ShareAuditFormatter(logger))

        logger.addHandler(fh)

    return logger


def _make_record_id(share_path: str, principal: str, access_type: str) -> str:
    return hashlib.sha1(
        f"{share_path}:{principal}:{access_type}".encode()
    ).hexdigest()


def log_permission_record(logger: logging.Logger, record) -> None:
    """Emit one permission record at data level (WARNING)."""
    if any(isinstance(h.formatter, ShareAuditJSONFormatter) for h in logger.handlers):
        message = "share_permission"
    else:
        message = f"{record.share_path} {record.principal}: {record.rights}"
        if record.is_inherited:
            message += " (inherited)"

    logger.warning(message, extra={
        "share_path": record.share_path,
        "principal": record.principal,
        "rights": record.rights,
        "access_type": record.access_type,
        "inheritance": record.inheritance,
        "is_inherited": record.is_inherited,
        "record_id": _make_record_id(
            record.share_path, record.principal, record.access_type
        ),
        "is_data": True,
    })


def _format_duration(seconds: int) -> str:
    h, r = divmod(seconds, 3600)
    m, s = divmod(r, 60)
    if h:
        return f"{h}h {m}m {s}s"
    if m:
        return f"{m}m {s}s"
    return f"{s}s"


def print_completion_stats(start_time, results=None):
    """Log run timing and, when given, per-outcome host counts."""
    if not start_time:
        return

    logger = logging.getLogger(LOGGER_NAME)
    end_time = datetime.now()

    logger.info("-" * 60)
    logger.info(f"Started:  {start_time:%Y-%m-%d %H:%M:%S}")
    logger.info(f"Finished: {end_time:%Y-%m-%d %H:%M:%S}")
    logger.info(f"Duration: {_format_duration(int((end_time - start_time).total_seconds()))}")

    if results is not None:
        counts = Counter(r.outcome.value for r in results)
        records = sum(len(r.records) for r in results)
        logger.info(f"Hosts probed: {len(results)}, permission records: {records}")
        for outcome, count in sorted(counts.items()):
            logger.info(f"  {outcome}: {count}")

    logger.info("-" * 60)
