"""Shared test fixtures for the dukabot test suite."""

import asyncio

import pytest

from dukabot.domain.models.location import GpsPin
from dukabot.domain.services.catalog import Catalog, Product
from dukabot.domain.services.delivery_quote import DeliveryQuoteResolver, FeeBand, FeeTable
from dukabot.domain.services.location_index import LocationIndex

KEKO = GpsPin(-6.8357, 39.2724)


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


def _tandika_streets():
    # 12 streets without coordinates; names sort in numeric order.
    return [{"name": f"Mtaa {i:02d}", "distance_km": 4.0 + i / 10} for i in range(1, 13)]


@pytest.fixture
def location_data() -> dict:
    return {
        "regions": [
            {
                "name": "Dar es Salaam",
                "districts": [
                    {
                        "name": "Temeke",
                        "wards": [
                            {
                                "name": "Keko",
                                "distance_km": 0.8,
                                "streets": [
                                    {
                                        "name": "Magurumbasi",
                                        "distance_km": 0.2,
                                        "lat": -6.8357,
                                        "lon": 39.2724,
                                        "places": "Keko Modern Furniture",
                                    },
                                    {"name": "Bora", "distance_km": 1.0, "lat": -6.8339, "lon": 39.2768},
                                    {"name": "Mivinjeni", "distance_km": 1.4},
                                ],
                            },
                            {
                                "name": "Kurasini",
                                "streets": [
                                    {"name": "Shimo la Udongo", "distance_km": 2.9},
                                    {"name": "Mivinjeni Kurasini", "distance_km": 3.4},
                                ],
                            },
                            {"name": "Tandika", "distance_km": 4.2, "streets": _tandika_streets()},
                            {"name": "Chamazi"},
                        ],
                    },
                    {
                        "name": "Ilala",
                        "wards": [
                            {
                                "name": "Kariakoo",
                                "distance_km": 3.5,
                                "streets": [
                                    {"name": "Msimbazi", "distance_km": 3.2, "lat": -6.8208, "lon": 39.2752},
                                ],
                            },
                            {"name": "Ukonga", "distance_km": 13.5},
                        ],
                    },
                ],
            }
        ]
    }


@pytest.fixture
def location_index(location_data) -> LocationIndex:
    return LocationIndex.from_nested(location_data)


@pytest.fixture
def default_fee_table() -> FeeTable:
    return FeeTable(
        bands=(
            FeeBand(2, 2500),
            FeeBand(5, 3500),
            FeeBand(8, 4500),
            FeeBand(12, 5500),
            FeeBand(18, 7000),
            FeeBand(25, 8500),
            FeeBand(None, 8500, per_km_increment=500),
        ),
        rounding_step=500,
    )


@pytest.fixture
def resolver(location_index) -> DeliveryQuoteResolver:
    return DeliveryQuoteResolver(location_index, reference_point=KEKO, match_radius_m=400)


@pytest.fixture
def catalog() -> Catalog:
    return Catalog(
        [
            Product(sku="SOAP", name="Sabuni Asili", price=120_000, details={"sw": "Sabuni ya asili.", "en": "Natural soap."}),
            Product(sku="OIL", name="Mafuta ya Nazi", price=30_000),
            Product(
                sku="BUNDLE",
                name="Kifurushi",
                price=50_000,
                children=(
                    Product(sku="BUNDLE_A", name="Kifurushi — A", price=50_000),
                    Product(sku="BUNDLE_B", name="Kifurushi — B", price=60_000),
                ),
            ),
        ]
    )
