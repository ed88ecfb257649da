"""Shared utilities for the service layer."""

import json
import re
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from uuid import uuid4

JsonList = list[object]
Serializable = Mapping[str, object] | list[object]


def new_id() -> str:
    return str(uuid4())


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def now_ms() -> int:
    """Wall-clock unix time in milliseconds."""
    return time.time_ns() // 1_000_000


def load_json_list(raw: str | None) -> JsonList:
    """Deserialize a JSON TEXT column holding a list. Anything else reads as []."""
    if not raw:
        return []
    result: object = json.loads(raw)
    if isinstance(result, list):
        return list(result)
    return []


def dump_json(obj: Serializable) -> str:
    return json.dumps(obj, default=str)


def redact_url(url: str) -> str:
    """Strip credentials and API-key paths from an RPC URL for logs and reports."""
    if not url:
        return url
    url = re.sub(r"//([^/@]+)@", "//***@", url)
    return re.sub(r"(/v\d+/)[^/?]+", r"\1***", url)
