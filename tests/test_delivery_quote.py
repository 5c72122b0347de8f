# tests/test_delivery_quote.py
"""Tests for fee bands, overrides and the delivery quote resolution ladder."""

import pytest

from dukabot.domain.models.location import GpsPin, StreetName
from dukabot.domain.models.quote import ResolutionMethod
from dukabot.domain.services.delivery_quote import (
    DeliveryQuoteResolver,
    FeeBand,
    FeeTable,
    fee_table_from_settings,
    haversine_km,
    round_up_to,
)
from dukabot.domain.services.location_index import LocationIndex

from tests.conftest import KEKO


# ── Fee table ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "km, fee",
    [
        (0, 2500),
        (1.9, 2500),
        (2.0, 2500),
        (2.01, 3500),
        (5, 3500),
        (7.5, 4500),
        (12, 5500),
        (17.9, 7000),
        (25, 8500),
        (25.2, 9000),
        (27, 9500),
        (30.5, 11500),
    ],
)
def test_band_fee(default_fee_table, km, fee):
    assert default_fee_table.band_fee(km) == fee


def test_band_fee_is_monotonic(default_fee_table):
    fees = [default_fee_table.band_fee(tenth / 10) for tenth in range(0, 600)]
    assert all(a <= b for a, b in zip(fees, fees[1:]))


def test_fees_round_up_to_step():
    table = FeeTable(bands=(FeeBand(None, 1200, per_km_increment=130),), rounding_step=500)
    assert table.band_fee(0) == 1500
    assert table.band_fee(3) == 2000  # 1200 + 3*130 = 1590


def test_round_up_to():
    assert round_up_to(0, 500) == 0
    assert round_up_to(-3, 500) == 0
    assert round_up_to(1, 500) == 500
    assert round_up_to(1000, 500) == 1000
    assert round_up_to(7.2, 1) == 8


@pytest.mark.parametrize(
    "bands",
    [
        (),
        (FeeBand(None, 2000), FeeBand(5, 3000)),
        (FeeBand(5, 3000), FeeBand(3, 4000)),
        (FeeBand(5, 3000), FeeBand(10, 2500)),
        (FeeBand(5, -1),),
        (FeeBand(5, 3000, per_km_increment=500), FeeBand(10, 4000)),
    ],
)
def test_misconfigured_fee_table_raises(bands):
    with pytest.raises(ValueError):
        FeeTable(bands=bands)


def test_override_takes_precedence(default_fee_table):
    table = FeeTable(
        bands=default_fee_table.bands,
        overrides={"Temeke::Keko": 2000, "temeke::keko::BORA": 1500},
    )
    assert table.fee_for(0.2, "Temeke", "Keko") == 2000
    assert table.fee_for(0.2, "TEMEKE", " keko ", "Magurumbasi") == 2000
    assert table.fee_for(1.0, "Temeke", "Keko", "Bora") == 1500
    assert table.fee_for(3.5, "Ilala", "Kariakoo") == 3500


def test_overrides_are_read_only(default_fee_table):
    table = FeeTable(bands=default_fee_table.bands, overrides={"a::b": 1000})
    with pytest.raises(TypeError):
        table.overrides["a::b"] = 0


def test_fee_table_from_settings_defaults():
    from dukabot.core.config import Settings

    table = fee_table_from_settings(Settings())
    assert table.band_fee(1) == 2500
    assert table.band_fee(26) == 9000
    assert table.rounding_step == 500


def test_haversine_reference_distance():
    north = GpsPin(KEKO.latitude + 0.0269796, KEKO.longitude)
    assert haversine_km(KEKO.latitude, KEKO.longitude, north.latitude, north.longitude) == pytest.approx(3.0, abs=1e-3)


# ── Resolution ladder ─────────────────────────────────────


def test_exact_street_match(resolver, default_fee_table):
    quote = resolver.resolve("temeke", "KEKO", StreetName("bora"), default_fee_table)
    assert quote.resolution_method is ResolutionMethod.EXACT_STREET_MATCH
    assert quote.confidence == 1.0
    assert quote.distance_km == pytest.approx(1.0)
    assert quote.resolved_street == "Bora"
    assert quote.fee == 2500


def test_exact_match_then_ward_average_when_streets_removed(location_data, default_fee_table):
    full = DeliveryQuoteResolver(LocationIndex.from_nested(location_data), reference_point=KEKO)
    exact = full.resolve("Temeke", "Keko", StreetName("Magurumbasi"), default_fee_table)
    assert exact.confidence == 1.0
    assert exact.resolution_method is ResolutionMethod.EXACT_STREET_MATCH

    keko = location_data["regions"][0]["districts"][0]["wards"][0]
    keko["streets"] = []
    stripped = DeliveryQuoteResolver(LocationIndex.from_nested(location_data), reference_point=KEKO)
    ward = stripped.resolve("Temeke", "Keko", StreetName("Magurumbasi"), default_fee_table)
    assert ward.confidence == 0.75
    assert ward.resolution_method is ResolutionMethod.WARD_AVERAGE
    assert ward.distance_km == pytest.approx(0.8)


def test_unknown_street_falls_back_to_ward_average(resolver, default_fee_table):
    quote = resolver.resolve("Temeke", "Keko", StreetName("Barabara Isiyojulikana"), default_fee_table)
    assert quote.resolution_method is ResolutionMethod.WARD_AVERAGE
    assert quote.resolved_street is None


def test_gps_pin_nearest_street_in_ward(resolver, default_fee_table):
    # ~100 m north of Magurumbasi
    pin = GpsPin(-6.8348, 39.2724)
    quote = resolver.resolve("Temeke", "Keko", pin, default_fee_table)
    assert quote.resolution_method is ResolutionMethod.NEAREST_BY_COORDINATE
    assert quote.resolved_street == "Magurumbasi"
    assert 0.7 < quote.confidence < 0.8
    assert quote.distance_km == pytest.approx(0.2)


def test_gps_pin_outside_radius_uses_ward_level(resolver, default_fee_table):
    pin = GpsPin(-6.80, 39.30)
    quote = resolver.resolve("Temeke", "Keko", pin, default_fee_table)
    assert quote.resolution_method is ResolutionMethod.WARD_AVERAGE


def test_derived_minimum(resolver, default_fee_table):
    quote = resolver.resolve("Temeke", "Kurasini", None, default_fee_table)
    assert quote.resolution_method is ResolutionMethod.DERIVED_MINIMUM
    assert quote.confidence == 0.6
    assert quote.distance_km == pytest.approx(2.9)
    assert quote.fee == 3500


def test_ward_without_any_distance(resolver, default_fee_table):
    quote = resolver.resolve("Temeke", "Chamazi", None, default_fee_table)
    assert quote.resolution_method is ResolutionMethod.NONE
    assert quote.confidence == 0.0
    assert quote.distance_km == 0.0


def test_unknown_ward_is_zero_confidence(resolver, default_fee_table):
    quote = resolver.resolve("Nowhere", "Nothing", StreetName("x"), default_fee_table)
    assert quote.resolution_method is ResolutionMethod.NONE
    assert quote.confidence == 0.0
    assert quote.fee == default_fee_table.band_fee(0)


def test_empty_index_degrades_to_zero_confidence(default_fee_table):
    resolver = DeliveryQuoteResolver(LocationIndex.empty(), reference_point=KEKO)
    quote = resolver.resolve("Temeke", "Keko", None, default_fee_table)
    assert quote.confidence == 0.0


def test_resolve_pin_matches_known_street_anywhere(resolver, default_fee_table):
    quote = resolver.resolve_pin(GpsPin(-6.8209, 39.2752), default_fee_table)
    assert quote.resolution_method is ResolutionMethod.NEAREST_BY_COORDINATE
    assert quote.district == "Ilala"
    assert quote.ward == "Kariakoo"
    assert quote.resolved_street == "Msimbazi"


def test_resolve_pin_straight_line(resolver, default_fee_table):
    pin = GpsPin(KEKO.latitude + 0.0269796, KEKO.longitude)
    quote = resolver.resolve_pin(pin, default_fee_table)
    assert quote.resolution_method is ResolutionMethod.STRAIGHT_LINE
    assert quote.confidence == 0.5
    assert quote.distance_km == pytest.approx(3.0, abs=1e-3)
    assert quote.fee == 3500


def test_resolve_pin_without_reference(location_index, default_fee_table):
    resolver = DeliveryQuoteResolver(location_index, reference_point=None)
    quote = resolver.resolve_pin(GpsPin(-7.5, 38.0), default_fee_table)
    assert quote.resolution_method is ResolutionMethod.NONE


def test_resolver_rejects_bad_radius(location_index):
    with pytest.raises(ValueError):
        DeliveryQuoteResolver(location_index, match_radius_m=0)


def test_quote_to_dict(resolver, default_fee_table):
    data = resolver.resolve("Temeke", "Keko", StreetName("Bora"), default_fee_table).to_dict()
    assert data["resolution_method"] == "exact-street-match"
    assert data["fee"] == 2500
