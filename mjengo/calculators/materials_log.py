"""
Append-only text log of calculations. An audit trail, not authoritative state.
"""

import logging
import threading
from datetime import datetime
from typing import Optional

from ..config import settings

logger = logging.getLogger(__name__)

_lock = threading.Lock()


def format_entry(result: dict, email: str, when: Optional[datetime] = None) -> str:
    when = when or datetime.utcnow()
    lines = [f"[{when.isoformat(timespec='seconds')}] {result['calculator']} — {email}"]
    for key, value in result["inputs"].items():
        lines.append(f"{key}: {value}")
    lines.append("Materials:")
    for item in result["line_items"]:
        lines.append(
            f"{item['description']} ... {item['quantity']} {item['unit']} ... "
            f"{item['unit_price']} ... {item['cost']}"
        )
    lines.append(f"materials ... {result['materials_cost']}")
    lines.append(f"labor ... {result['labor_cost']}")
    lines.append(f"subtotal ... {result['total_cost']}")
    return "\n".join(lines) + "\n\n"


def append_entry(result: dict, email: str, path: Optional[str] = None) -> bool:
    """Append a calculation. Logging failures never fail the request."""
    path = path or settings.MATERIALS_LOG_PATH
    entry = format_entry(result, email)
    try:
        with _lock, open(path, "a", encoding="utf-8") as f:
            f.write(entry)
    except OSError as e:
        logger.error("Could not write materials log %s: %s", path, e)
        return False
    logger.debug("%s calculation saved to %s", result["calculator"], path)
    return True
