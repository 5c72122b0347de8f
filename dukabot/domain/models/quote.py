from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ResolutionMethod(str, Enum):
    EXACT_STREET_MATCH = "exact-street-match"
    NEAREST_BY_COORDINATE = "nearest-by-coordinate"
    WARD_AVERAGE = "ward-average"
    DERIVED_MINIMUM = "derived-minimum"
    STRAIGHT_LINE = "straight-line"
    NONE = "none"


@dataclass(frozen=True)
class DeliveryQuote:
    distance_km: float
    resolution_method: ResolutionMethod
    confidence: float
    fee: int
    resolved_street: Optional[str] = None
    district: Optional[str] = None
    ward: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["resolution_method"] = self.resolution_method.value
        return data
