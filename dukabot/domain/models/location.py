# dukabot/domain/models/location.py
"""
Location hierarchy used to price deliveries.

Regions contain districts, districts contain wards, wards contain streets.
Distances are kilometres from the shop's reference point; coordinates are
decimal degrees.  Any of them may be missing for a given node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class GpsPin:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class StreetName:
    name: str


# A district/ward pair is optionally refined by one of these.
Refinement = Union[StreetName, GpsPin, None]


@dataclass(frozen=True)
class Street:
    name: str
    distance_km: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    places: str = ""

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class Ward:
    name: str
    district: str
    distance_km: Optional[float] = None
    streets: list[Street] = field(default_factory=list)


@dataclass
class District:
    name: str
    region: str
    wards: dict[str, Ward] = field(default_factory=dict)  # keyed by normalised ward name


@dataclass
class Region:
    name: str
    districts: dict[str, District] = field(default_factory=dict)  # keyed by normalised district name

