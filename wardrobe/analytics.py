from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

UNDERUSED_AFTER = timedelta(days=90)
UNDERUSED_LIMIT = 5


def count_by(items: Sequence[Mapping[str, Any]], field: str) -> List[Dict[str, Any]]:
    counts = Counter((it.get(field) or "unknown") for it in items)
    return [{"name": name, "value": value} for name, value in counts.items()]


def underused(
    items: Sequence[Mapping[str, Any]],
    now: Optional[datetime] = None,
    limit: int = UNDERUSED_LIMIT,
) -> List[Mapping[str, Any]]:
    """Items not worn in the last three months (never-worn items included)."""
    cutoff = (now or datetime.utcnow()) - UNDERUSED_AFTER
    stale = [it for it in items if not isinstance(it.get("lastUsed"), datetime) or it["lastUsed"] < cutoff]
    return stale[:limit]
