# dukabot/domain/services/location_index.py
"""
Read-only index over the delivery area: regions → districts → wards → streets.

Sources supported by :func:`load_location_index`:

* nested JSON  ``{"regions": [{"name", "districts": [{"name", "wards": [...]}]}]}``
* flat dataset rows (a JSON list) with upper-case keys
  ``REGION, DISTRICT, WARD, STREET, PLACES,
  DISTANCE_FROM_KEKO_MAGURUMBASI_KM, LAT, LON``
* a ward CSV with ``district, ward, km`` columns

A missing or broken file never raises: the index comes back empty and
quotes degrade to the lowest-confidence path.
"""

from __future__ import annotations

import csv
import json
import logging
import unicodedata
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from dukabot.domain.models.location import District, Region, Street, Ward

logger = logging.getLogger("location_index")

DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent.parent / "data" / "locations.json"

_QUOTE_CHARS = str.maketrans("", "", "'\"‘’“”")
_DISTANCE_KEYS = ("DISTANCE_FROM_KEKO_MAGURUMBASI_KM", "DISTANCE_KM", "KM")


def normalize_place_name(value: Optional[str]) -> str:
    """Case-, diacritic- and whitespace-insensitive key for place names."""
    decomposed = unicodedata.normalize("NFD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.lower().translate(_QUOTE_CHARS).split())


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return None


class LocationIndex:
    def __init__(self, regions: Iterable[Region] = ()):
        self._regions: dict[str, Region] = {}
        self._districts: dict[str, District] = {}
        for region in regions:
            self._regions[normalize_place_name(region.name)] = region
            for key, district in region.districts.items():
                self._districts[key] = district

    # ── Builders ────────────────────────────────────────────

    @classmethod
    def empty(cls) -> "LocationIndex":
        return cls()

    @classmethod
    def from_nested(cls, data: dict[str, Any]) -> "LocationIndex":
        regions = []
        for region_data in data.get("regions") or []:
            region = Region(name=str(region_data.get("name", "")).strip())
            for district_data in region_data.get("districts") or []:
                district = District(name=str(district_data["name"]).strip(), region=region.name)
                for ward_data in district_data.get("wards") or []:
                    ward = Ward(
                        name=str(ward_data["name"]).strip(),
                        district=district.name,
                        distance_km=_to_float(ward_data.get("distance_km")),
                    )
                    for street_data in ward_data.get("streets") or []:
                        ward.streets.append(
                            Street(
                                name=str(street_data["name"]).strip(),
                                distance_km=_to_float(street_data.get("distance_km")),
                                latitude=_to_float(street_data.get("lat")),
                                longitude=_to_float(street_data.get("lon")),
                                places=str(street_data.get("places") or ""),
                            )
                        )
                    district.wards[normalize_place_name(ward.name)] = ward
                region.districts[normalize_place_name(district.name)] = district
            regions.append(region)
        return cls(regions)

    @classmethod
    def from_rows(cls, rows: Iterable[dict[str, Any]]) -> "LocationIndex":
        """Build from flat rows; a row without STREET only sets the ward distance."""
        regions: dict[str, Region] = {}
        for raw in rows:
            row = {str(k).strip().upper(): v for k, v in raw.items()}
            district_name = str(row.get("DISTRICT") or "").strip()
            ward_name = str(row.get("WARD") or "").strip()
            if not district_name or not ward_name:
                continue
            region_name = str(row.get("REGION") or "").strip()

            region = regions.setdefault(normalize_place_name(region_name), Region(name=region_name))
            district = region.districts.setdefault(
                normalize_place_name(district_name),
                District(name=district_name, region=region_name),
            )
            ward = district.wards.setdefault(
                normalize_place_name(ward_name),
                Ward(name=ward_name, district=district_name),
            )

            distance = next(
                (d for d in (_to_float(row.get(k)) for k in _DISTANCE_KEYS) if d is not None),
                None,
            )
            street_name = str(row.get("STREET") or "").strip()
            if not street_name:
                ward.distance_km = distance
                continue
            ward.streets.append(
                Street(
                    name=street_name,
                    distance_km=max(0.0, distance) if distance is not None else None,
                    latitude=_to_float(row.get("LAT") or row.get("LATITUDE")),
                    longitude=_to_float(row.get("LON") or row.get("LONGITUDE")),
                    places=str(row.get("PLACES") or "").strip(),
                )
            )
        return cls(regions.values())

    # ── Lookups ─────────────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        return not self._districts

    def districts(self) -> list[str]:
        return sorted((d.name for d in self._districts.values()), key=str.casefold)

    def find_district(self, name: Optional[str]) -> Optional[District]:
        return self._districts.get(normalize_place_name(name))

    def wards(self, district: Optional[str]) -> list[str]:
        found = self.find_district(district)
        if found is None:
            return []
        return sorted((w.name for w in found.wards.values()), key=str.casefold)

    def find_ward(self, district: Optional[str], ward: Optional[str]) -> Optional[Ward]:
        found = self.find_district(district)
        if found is None:
            return None
        return found.wards.get(normalize_place_name(ward))

    def streets(self, district: Optional[str], ward: Optional[str]) -> list[Street]:
        found = self.find_ward(district, ward)
        if found is None:
            return []
        return sorted(found.streets, key=lambda s: s.name.casefold())

    def find_street(self, district: Optional[str], ward: Optional[str], name: Optional[str]) -> Optional[Street]:
        key = normalize_place_name(name)
        if not key:
            return None
        for street in self.streets(district, ward):
            if normalize_place_name(street.name) == key:
                return street
        return None

    def iter_streets(self) -> Iterator[tuple[District, Ward, Street]]:
        for district in self._districts.values():
            for ward in district.wards.values():
                for street in ward.streets:
                    yield district, ward, street


def _load_csv(path: Path) -> LocationIndex:
    with path.open(encoding="utf-8-sig", newline="") as fh:
        reader = csv.DictReader(fh)
        rows = []
        for row in reader:
            clean = {str(k).strip().lower(): v for k, v in row.items() if k}
            km_key = next((k for k in ("km", "distance_km") if k in clean), None)
            if km_key is None:
                km_key = next((k for k in clean if "km" in k), None)
            rows.append(
                {
                    "REGION": clean.get("region", ""),
                    "DISTRICT": clean.get("district", ""),
                    "WARD": clean.get("ward", ""),
                    "STREET": clean.get("street", ""),
                    "KM": clean.get(km_key) if km_key else None,
                }
            )
    return LocationIndex.from_rows(rows)


def load_location_index(path: str | Path | None = None) -> LocationIndex:
    """Load the index from *path* (or the bundled dataset), never raising."""
    target = Path(path) if path else DEFAULT_DATA_PATH
    if not target.exists():
        logger.warning("Location data not found at %s; delivery quotes will be degraded", target)
        return LocationIndex.empty()

    try:
        if target.suffix.lower() == ".csv":
            index = _load_csv(target)
        else:
            data = json.loads(target.read_text(encoding="utf-8-sig"))
            index = LocationIndex.from_rows(data) if isinstance(data, list) else LocationIndex.from_nested(data)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.error("Failed to load location data from %s: %s", target, exc)
        return LocationIndex.empty()

    logger.info("Loaded location index from %s (%d districts)", target, len(index.districts()))
    return index


_index_singleton: LocationIndex | None = None


def get_location_index() -> LocationIndex:
    global _index_singleton
    if _index_singleton is None:
        from dukabot.core.config import settings

        _index_singleton = load_location_index(settings.LOCATION_DATA_PATH or None)
    return _index_singleton
