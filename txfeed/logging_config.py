"""
Logging setup for the feed service.

LOG_LEVEL picks the root level (default INFO). LOG_FORMAT=json switches to
one JSON object per record for log aggregation.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger


SERVICE_NAME = "txfeed"


class FeedJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["service"] = SERVICE_NAME
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    fmt = (fmt or os.getenv("LOG_FORMAT") or "text").lower()

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(FeedJsonFormatter("%(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
