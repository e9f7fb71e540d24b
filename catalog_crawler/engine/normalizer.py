"""Map raw search nodes onto the persisted record shape."""

from __future__ import annotations

import base64
import math
import re
from dataclasses import asdict, dataclass
from typing import Any

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
UNKNOWN_DEPARTMENT = "Unknown"


@dataclass(slots=True, frozen=True)
class NormalizedRecord:
    """Record shape written to the destination store, keyed by ``id``."""

    id: str
    rmpId: str
    legacyId: int
    firstName: str
    lastName: str
    avgRating: float
    avgDifficulty: float
    numRatings: int
    wouldTakeAgainPercent: int
    department: str
    schoolId: str
    slug: str

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


def extract_identity(node: Any) -> int | None:
    """Return the numeric identity of a search node, or None when unusable."""

    if not isinstance(node, dict):
        return None
    value = node.get("legacyId")
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def opaque_id(entity_type: str, identity: int) -> str:
    """Deterministic identifier derived from the numeric identity."""

    return base64.b64encode(f"{entity_type}-{identity}".encode("utf-8")).decode("ascii")


def slugify(*parts: object) -> str:
    text = "-".join(str(part) for part in parts).lower()
    return _SLUG_PATTERN.sub("-", text).strip("-")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _round_half_up(value: Any) -> int:
    return int(math.floor(_number(value) + 0.5))


class Normalizer:
    """Pure, total transformation from search nodes to ``NormalizedRecord``.

    Missing or invalid fields fall back to defaults; nothing raises.
    """

    def __init__(self, entity_type: str = "Teacher") -> None:
        self.entity_type = entity_type

    def normalize(self, node: dict[str, Any], identity: int | None = None) -> NormalizedRecord:
        if identity is None:
            identity = extract_identity(node)
        legacy_id = identity if identity is not None else 0
        record_id = opaque_id(self.entity_type, legacy_id)
        first_name = _text(node.get("firstName"))
        last_name = _text(node.get("lastName"))
        school = node.get("school")
        school_id = _text(school.get("id")) if isinstance(school, dict) else ""
        return NormalizedRecord(
            id=record_id,
            rmpId=record_id,
            legacyId=legacy_id,
            firstName=first_name,
            lastName=last_name,
            avgRating=_number(node.get("avgRating")),
            avgDifficulty=_number(node.get("avgDifficulty")),
            numRatings=int(_number(node.get("numRatings"))),
            wouldTakeAgainPercent=_round_half_up(node.get("wouldTakeAgainPercent")),
            department=_text(node.get("department")) or UNKNOWN_DEPARTMENT,
            schoolId=school_id,
            slug=slugify(first_name, last_name, legacy_id),
        )


__all__ = ["NormalizedRecord", "Normalizer", "extract_identity", "opaque_id", "slugify"]
