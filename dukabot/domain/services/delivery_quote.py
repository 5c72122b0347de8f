# dukabot/domain/services/delivery_quote.py
"""
Delivery distance resolution and fee lookup.

Resolution order for ``resolve(district, ward, refinement)`` (first success wins):
  1. Exact street match inside the ward            → confidence 1.0
  2. GPS pin: nearest street with coordinates       → 1.0 at 0 m, 0.0 at the match radius
  3. Ward representative distance                   → 0.75
  4. Shortest known street distance in the ward     → 0.6
  5. Nothing known                                  → distance 0, confidence 0

The fee comes from a :class:`FeeTable` snapshot: a path override
(``district::ward::street`` then ``district::ward``) wins over the distance
bands.  Both the resolver and the table are pure; they can be shared freely
between concurrent requests.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from dukabot.domain.models.location import GpsPin, Refinement, Street, StreetName, Ward
from dukabot.domain.models.quote import DeliveryQuote, ResolutionMethod
from dukabot.domain.services.location_index import LocationIndex, normalize_place_name

logger = logging.getLogger("delivery_quote")

EARTH_RADIUS_KM = 6371.0
DEFAULT_MATCH_RADIUS_M = 400.0

WARD_AVERAGE_CONFIDENCE = 0.75
DERIVED_MINIMUM_CONFIDENCE = 0.6
STRAIGHT_LINE_CONFIDENCE = 0.5


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def round_up_to(value: float, step: int) -> int:
    if not math.isfinite(value) or value <= 0:
        return 0
    if step <= 1:
        return int(math.ceil(value))
    return int(math.ceil(value / step) * step)


def override_key(district: str, ward: str, street: Optional[str] = None) -> str:
    parts = [district, ward] + ([street] if street else [])
    return "::".join(normalize_place_name(p) for p in parts)


# ──────────────────────────────────────────────────────────
# Fee table
# ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FeeBand:
    up_to_km: Optional[float]
    fee: int
    per_km_increment: int = 0


@dataclass(frozen=True)
class FeeTable:
    bands: tuple[FeeBand, ...]
    overrides: Mapping[str, int] = field(default_factory=dict)
    rounding_step: int = 500

    def __post_init__(self):
        if not self.bands:
            raise ValueError("fee table needs at least one band")

        lower = 0.0
        ceiling_fee = 0
        for i, band in enumerate(self.bands):
            is_last = i == len(self.bands) - 1
            if band.up_to_km is None and not is_last:
                raise ValueError("only the last fee band may be open-ended")
            if band.up_to_km is not None and band.up_to_km <= lower and i > 0:
                raise ValueError(f"fee band upper bounds must increase (band {i})")
            if band.fee < 0 or band.per_km_increment < 0:
                raise ValueError(f"fee band {i} has a negative fee")
            if band.fee < ceiling_fee:
                raise ValueError(f"fee band {i} is cheaper than a nearer band")
            if band.up_to_km is not None:
                ceiling_fee = band.fee + math.ceil(band.up_to_km - lower) * band.per_km_increment
                lower = band.up_to_km

        normalised = {}
        for key, fee in dict(self.overrides).items():
            if int(fee) < 0:
                raise ValueError(f"override {key!r} has a negative fee")
            normalised["::".join(normalize_place_name(p) for p in str(key).split("::"))] = int(fee)
        object.__setattr__(self, "overrides", MappingProxyType(normalised))

    def band_fee(self, distance_km: float) -> int:
        km = max(0.0, float(distance_km or 0.0))
        lower = 0.0
        for band in self.bands:
            if band.up_to_km is None or km <= band.up_to_km:
                extra = math.ceil(km - lower) if km > lower else 0
                return round_up_to(band.fee + extra * band.per_km_increment, self.rounding_step)
            lower = band.up_to_km
        last = self.bands[-1]
        return round_up_to(last.fee, self.rounding_step)

    def override_for(self, district: Optional[str], ward: Optional[str], street: Optional[str] = None) -> Optional[int]:
        if not district or not ward:
            return None
        if street:
            hit = self.overrides.get(override_key(district, ward, street))
            if hit is not None:
                return hit
        return self.overrides.get(override_key(district, ward))

    def fee_for(
        self,
        distance_km: float,
        district: Optional[str] = None,
        ward: Optional[str] = None,
        street: Optional[str] = None,
    ) -> int:
        override = self.override_for(district, ward, street)
        if override is not None:
            return override
        return self.band_fee(distance_km)


def fee_table_from_settings(cfg=None) -> FeeTable:
    """Snapshot the configured pricing into an immutable table."""
    if cfg is None:
        from dukabot.core.config import settings as cfg

    bands = tuple(
        FeeBand(up_to_km=b.up_to_km, fee=b.fee, per_km_increment=b.per_km_increment)
        for b in cfg.DELIVERY_FEE_BANDS
    )
    return FeeTable(
        bands=bands,
        overrides=dict(cfg.DELIVERY_FEE_OVERRIDES),
        rounding_step=cfg.FEE_ROUNDING_STEP,
    )


# ──────────────────────────────────────────────────────────
# Resolver
# ──────────────────────────────────────────────────────────


class DeliveryQuoteResolver:
    def __init__(
        self,
        index: LocationIndex,
        *,
        reference_point: Optional[GpsPin] = None,
        match_radius_m: float = DEFAULT_MATCH_RADIUS_M,
    ):
        if match_radius_m <= 0:
            raise ValueError("match_radius_m must be positive")
        self.index = index
        self.reference_point = reference_point
        self.match_radius_m = match_radius_m

    def resolve(
        self,
        district: Optional[str],
        ward: Optional[str],
        refinement: Refinement,
        fee_table: FeeTable,
    ) -> DeliveryQuote:
        found = self.index.find_ward(district, ward)
        if found is None:
            logger.info("No ward match for %s::%s; zero-confidence quote", district, ward)
            return self._quote(0.0, ResolutionMethod.NONE, 0.0, fee_table, district, ward)

        district_name, ward_name = found.district, found.name

        if isinstance(refinement, StreetName):
            street = self.index.find_street(district_name, ward_name, refinement.name)
            distance = self._street_distance(street) if street else None
            if distance is not None:
                return self._quote(
                    distance, ResolutionMethod.EXACT_STREET_MATCH, 1.0, fee_table,
                    district_name, ward_name, street.name,
                )

        if isinstance(refinement, GpsPin):
            match = self._nearest(refinement, found.streets)
            if match is not None:
                street, metres = match
                distance = self._street_distance(street)
                if distance is None:
                    distance = self._from_reference(refinement) or 0.0
                return self._quote(
                    distance, ResolutionMethod.NEAREST_BY_COORDINATE, self._pin_confidence(metres),
                    fee_table, district_name, ward_name, street.name,
                )

        return self._ward_level(found, fee_table)

    def resolve_pin(self, pin: GpsPin, fee_table: FeeTable) -> DeliveryQuote:
        """Quote a pin shared before any district/ward was chosen."""
        best: Optional[tuple[Ward, Street, float]] = None
        for _, ward, street in self.index.iter_streets():
            if not street.has_coordinates:
                continue
            metres = haversine_km(pin.latitude, pin.longitude, street.latitude, street.longitude) * 1000
            if metres <= self.match_radius_m and (best is None or metres < best[2]):
                best = (ward, street, metres)

        if best is not None:
            ward, street, metres = best
            distance = self._street_distance(street)
            if distance is None:
                distance = self._from_reference(pin) or 0.0
            return self._quote(
                distance, ResolutionMethod.NEAREST_BY_COORDINATE, self._pin_confidence(metres),
                fee_table, ward.district, ward.name, street.name,
            )

        distance = self._from_reference(pin)
        if distance is None:
            return self._quote(0.0, ResolutionMethod.NONE, 0.0, fee_table)
        return self._quote(distance, ResolutionMethod.STRAIGHT_LINE, STRAIGHT_LINE_CONFIDENCE, fee_table)

    # ── internals ───────────────────────────────────────────

    def _ward_level(self, ward: Ward, fee_table: FeeTable) -> DeliveryQuote:
        if ward.distance_km is not None:
            return self._quote(
                ward.distance_km, ResolutionMethod.WARD_AVERAGE, WARD_AVERAGE_CONFIDENCE,
                fee_table, ward.district, ward.name,
            )
        known = [s.distance_km for s in ward.streets if s.distance_km is not None]
        if known:
            return self._quote(
                min(known), ResolutionMethod.DERIVED_MINIMUM, DERIVED_MINIMUM_CONFIDENCE,
                fee_table, ward.district, ward.name,
            )
        return self._quote(0.0, ResolutionMethod.NONE, 0.0, fee_table, ward.district, ward.name)

    def _nearest(self, pin: GpsPin, streets: Iterable[Street]) -> Optional[tuple[Street, float]]:
        best: Optional[tuple[Street, float]] = None
        for street in streets:
            if not street.has_coordinates:
                continue
            metres = haversine_km(pin.latitude, pin.longitude, street.latitude, street.longitude) * 1000
            if best is None or metres < best[1]:
                best = (street, metres)
        if best is None or best[1] > self.match_radius_m:
            return None
        return best

    def _pin_confidence(self, metres: float) -> float:
        return min(1.0, max(0.0, 1.0 - metres / self.match_radius_m))

    def _street_distance(self, street: Street) -> Optional[float]:
        if street.distance_km is not None:
            return street.distance_km
        if street.has_coordinates:
            return self._from_reference(GpsPin(street.latitude, street.longitude))
        return None

    def _from_reference(self, pin: GpsPin) -> Optional[float]:
        if self.reference_point is None:
            return None
        return haversine_km(
            self.reference_point.latitude, self.reference_point.longitude,
            pin.latitude, pin.longitude,
        )

    def _quote(
        self,
        distance_km: float,
        method: ResolutionMethod,
        confidence: float,
        fee_table: FeeTable,
        district: Optional[str] = None,
        ward: Optional[str] = None,
        street: Optional[str] = None,
    ) -> DeliveryQuote:
        distance_km = max(0.0, distance_km)
        return DeliveryQuote(
            distance_km=distance_km,
            resolution_method=method,
            confidence=confidence,
            fee=fee_table.fee_for(distance_km, district, ward, street),
            resolved_street=street,
            district=district,
            ward=ward,
        )


_resolver_singleton: DeliveryQuoteResolver | None = None


def get_quote_resolver() -> DeliveryQuoteResolver:
    global _resolver_singleton
    if _resolver_singleton is None:
        from dukabot.core.config import settings
        from dukabot.domain.services.location_index import get_location_index

        reference = None
        if settings.REFERENCE_LAT is not None and settings.REFERENCE_LON is not None:
            reference = GpsPin(settings.REFERENCE_LAT, settings.REFERENCE_LON)
        _resolver_singleton = DeliveryQuoteResolver(
            get_location_index(),
            reference_point=reference,
            match_radius_m=settings.GPS_MATCH_RADIUS_M,
        )
    return _resolver_singleton
