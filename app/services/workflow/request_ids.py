"""Request id format: ``TYPE-YYYYMMDD-HHMM-CONTEXT-XXXX``.

Claims carry no context and use two unique parts instead:
``CLM-YYYYMMDD-HHMM-XXXXX-XXXX``.
"""
import re
import secrets
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

REQUEST_ID_PREFIXES = ("TSR", "VIS", "ACCOM", "CLM", "TRN")

# Excludes 0/O and 1/I
UNIQUE_ID_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

DEFAULT_CONTEXT = "GEN"


class ParsedRequestId(BaseModel):
    prefix: str
    timestamp: str
    context: str
    unique_id: str
    created_at: datetime


def generate_unique_id(length: int = 4) -> str:
    return "".join(secrets.choice(UNIQUE_ID_CHARS) for _ in range(length))


def format_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y%m%d-%H%M")


def sanitize_context(context: Optional[str]) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9]", "", context or "").upper()[:5]
    return cleaned or DEFAULT_CONTEXT


def generate_request_id(prefix: str, context: Optional[str] = None, moment: Optional[datetime] = None) -> str:
    if prefix not in REQUEST_ID_PREFIXES:
        raise ValueError(f"Unknown request id prefix: {prefix}")
    timestamp = format_timestamp(moment or datetime.now())
    if prefix == "CLM":
        return f"{prefix}-{timestamp}-{generate_unique_id(5)}-{generate_unique_id(4)}"
    return f"{prefix}-{timestamp}-{sanitize_context(context)}-{generate_unique_id()}"


def parse_request_id(request_id: str) -> Optional[ParsedRequestId]:
    """Split a request id into its parts, or return None if it does not follow the format."""
    parts = request_id.split("-")
    if len(parts) != 5:
        return None

    prefix, date_part, time_part, third, fourth = parts
    if prefix not in REQUEST_ID_PREFIXES:
        return None

    try:
        created_at = datetime.strptime(f"{date_part}{time_part}", "%Y%m%d%H%M")
    except ValueError:
        return None

    if prefix == "CLM":
        context, unique_id = "CLAIM", f"{third}-{fourth}"
    else:
        context, unique_id = third, fourth

    return ParsedRequestId(
        prefix=prefix,
        timestamp=f"{date_part}-{time_part}",
        context=context,
        unique_id=unique_id,
        created_at=created_at,
    )
