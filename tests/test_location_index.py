# tests/test_location_index.py
"""Tests for the static location hierarchy and its loaders."""

import json

import pytest

from dukabot.domain.services.location_index import (
    DEFAULT_DATA_PATH,
    LocationIndex,
    load_location_index,
    normalize_place_name,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Keko", "keko"),
        ("  KEKO   Mwanga  ", "keko mwanga"),
        ("Chang'ombe", "changombe"),
        ("Chang’ombe", "changombe"),
        ("Kéko Jùu", "keko juu"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_place_name(raw, expected):
    assert normalize_place_name(raw) == expected


def test_districts_and_wards_are_sorted(location_index):
    assert location_index.districts() == ["Ilala", "Temeke"]
    assert location_index.wards("temeke") == ["Chamazi", "Keko", "Kurasini", "Tandika"]
    assert location_index.wards("Nowhere") == []


def test_streets_sorted_case_insensitively(location_index):
    names = [s.name for s in location_index.streets("Temeke", "keko")]
    assert names == ["Bora", "Magurumbasi", "Mivinjeni"]


def test_find_street_ignores_case_and_whitespace(location_index):
    street = location_index.find_street("TEMEKE", " Keko ", "  magurumbasi ")
    assert street is not None
    assert street.name == "Magurumbasi"
    assert street.has_coordinates
    assert location_index.find_street("Temeke", "Keko", "Unknown") is None
    assert location_index.find_street("Temeke", "Keko", "") is None


def test_iter_streets_covers_every_ward(location_index):
    triples = list(location_index.iter_streets())
    assert len(triples) == 3 + 2 + 12 + 1
    assert {w.name for _, w, _ in triples} == {"Keko", "Kurasini", "Tandika", "Kariakoo"}


def test_from_rows_ward_row_sets_distance():
    index = LocationIndex.from_rows(
        [
            {"REGION": "Dar es Salaam", "DISTRICT": "Temeke", "WARD": "Keko", "DISTANCE_FROM_KEKO_MAGURUMBASI_KM": "0.8"},
            {
                "region": "Dar es Salaam",
                "district": "Temeke",
                "ward": "Keko",
                "street": "Bora",
                "places": "Bora Shoes",
                "DISTANCE_FROM_KEKO_MAGURUMBASI_KM": "1.0",
                "LAT": "-6.8339",
                "LON": "39.2768",
            },
            {"DISTRICT": "", "WARD": "Orphan"},
        ]
    )
    ward = index.find_ward("Temeke", "Keko")
    assert ward.distance_km == pytest.approx(0.8)
    assert [s.name for s in ward.streets] == ["Bora"]
    assert ward.streets[0].places == "Bora Shoes"
    assert ward.streets[0].latitude == pytest.approx(-6.8339)


def test_missing_file_gives_empty_index(tmp_path):
    index = load_location_index(tmp_path / "nope.json")
    assert index.is_empty
    assert index.districts() == []


def test_broken_file_gives_empty_index(tmp_path):
    target = tmp_path / "broken.json"
    target.write_text("{ not json", encoding="utf-8")
    assert load_location_index(target).is_empty


def test_ward_csv_loader(tmp_path):
    target = tmp_path / "wards.csv"
    target.write_text("District,Ward,KM\nTemeke,Keko,0.8\nIlala,Kariakoo,3.5\n", encoding="utf-8")
    index = load_location_index(target)
    assert index.districts() == ["Ilala", "Temeke"]
    assert index.find_ward("ilala", "kariakoo").distance_km == pytest.approx(3.5)


def test_nested_json_file_loader(tmp_path, location_data):
    target = tmp_path / "locations.json"
    target.write_text(json.dumps(location_data), encoding="utf-8")
    index = load_location_index(target)
    assert index.find_ward("Temeke", "Tandika") is not None


def test_bundled_dataset_loads():
    assert DEFAULT_DATA_PATH.exists()
    index = load_location_index()
    assert not index.is_empty
    assert "Temeke" in index.districts()
    assert index.find_street("Temeke", "Keko", "Magurumbasi") is not None
