"""JSON event logging for the dashboard, with an optional MongoDB copy."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from eda_dashboard.config.settings import get_settings

_LOGGER_NAME = "eda_dashboard"
_SERVICE_NAME = "eda-dashboard"
_EVENTS_COLLECTION = "app_events"

# None: not tried yet, False: disabled, otherwise the pymongo collection.
_event_sink: Any = None


def get_logger() -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
        logger.addHandler(handler)
        logger.setLevel(get_settings().log_level)
    return logger


def new_request_id() -> str:
    """Id shared by the start/end events of one upload or aggregation."""
    return f"eda-{uuid4().hex[:12]}"


def _sink():
    global _event_sink
    if _event_sink is not None:
        return _event_sink or None

    settings = get_settings()
    _event_sink = False
    if not settings.mongodb_uri:
        return None
    try:
        collection = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=2000)[settings.mongodb_db][
            _EVENTS_COLLECTION
        ]
        collection.create_index([("ts", 1)])
    except PyMongoError as exc:
        get_logger().warning("event sink disabled: %s", exc)
        return None
    _event_sink = collection
    return collection


def reset_event_sink() -> None:
    """Forget the sink so the next event re-reads MONGODB_URI."""
    global _event_sink
    _event_sink = None


def log_event(event: str, payload: Dict[str, Any] | None = None, *, level: str = "info") -> None:
    level = level.lower()
    record: Dict[str, Any] = {
        "event": event,
        "ts": datetime.now(timezone.utc).isoformat(),
        "service": _SERVICE_NAME,
        "level": level,
        **(payload or {}),
    }
    line = json.dumps(record, ensure_ascii=False, default=str)

    logger = get_logger()
    getattr(logger, level, logger.info)("%s", line)

    collection = _sink()
    if collection is None:
        return
    try:
        # round-trip through JSON so numpy scalars and the like become BSON-safe
        collection.insert_one(json.loads(line))
    except PyMongoError as exc:
        logger.debug("event sink write failed: %s", exc)
