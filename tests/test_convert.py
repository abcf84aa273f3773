"""Tests for HUD CSV conversion."""

import json

import pytest

from dealflow.errors import ReferenceDataError
from dealflow.rent import ReferenceRentStore, convert_hud_csv, read_hud_csv

WIDE_CSV = """\
ZIP Code,HUD Metro Fair Market Rent Area Name,SAFMR 0BR,SAFMR 0BR - 90% Payment Standard,SAFMR 1BR,SAFMR 2BR,SAFMR 3BR,SAFMR 3BR - 110% Payment Standard,SAFMR 4BR
43211,"Columbus, OH MSA","$900","$810","$1,000","$1,150","$1,460","$1,606","$1,700"
43207,"Columbus, OH MSA","$850","$765","$950","$1,100","$1,400","$1,540",
bad,"Columbus, OH MSA","$850","$765","$950","$1,100","$1,400","$1,540","$1,600"
"""

LONG_CSV = """\
zipCode,bedrooms,fairMarketRent,year,county,state
43211,2,1150,2024,Franklin,OH
43211,3,1460,,Franklin,OH
43207,x,1100,2024,Franklin,OH
"""


def _write(tmp_path, text, name="hud.csv"):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_wide_layout(tmp_path):
    records, report = read_hud_csv(_write(tmp_path, WIDE_CSV), year=2024, state="OH")

    assert report.layout == "wide"
    assert report.rows == 3
    assert report.records == 9
    assert len(report.errors) == 1
    assert "bad" in report.errors[0]

    north = [r for r in records if r.zip_code == "43211"]
    assert [(r.bedrooms, r.fair_market_rent) for r in north] == [
        (0, 900),
        (1, 1000),
        (2, 1150),
        (3, 1460),
        (4, 1700),
    ]
    assert all(r.year == 2024 and r.state == "OH" for r in records)
    # Empty 4BR cell is skipped
    assert {r.bedrooms for r in records if r.zip_code == "43207"} == {0, 1, 2, 3}


def test_long_layout(tmp_path):
    records, report = read_hud_csv(_write(tmp_path, LONG_CSV), year=2023)

    assert report.layout == "long"
    assert report.records == 2
    assert len(report.errors) == 1
    assert records[0].year == 2024
    # Missing year falls back to the given one
    assert records[1].year == 2023
    assert records[1].county == "Franklin"


def test_long_layout_missing_columns(tmp_path):
    path = _write(tmp_path, "zip,rent\n43211,1000\n")
    with pytest.raises(ReferenceDataError, match="bedrooms"):
        read_hud_csv(path)


def test_missing_file(tmp_path):
    with pytest.raises(ReferenceDataError, match="not found"):
        read_hud_csv(tmp_path / "nope.csv")


def test_empty_file(tmp_path):
    with pytest.raises(ReferenceDataError, match="empty"):
        read_hud_csv(_write(tmp_path, "\n\n"))


def test_convert_writes_reference_json(tmp_path):
    out = tmp_path / "data" / "hud-rental-data.json"
    report = convert_hud_csv(_write(tmp_path, LONG_CSV), out, year=2023)

    assert report.records == 2
    rows = json.loads(out.read_text())
    assert rows[0] == {
        "zipCode": "43211",
        "bedrooms": 2,
        "fairMarketRent": 1150.0,
        "year": 2024,
        "county": "Franklin",
        "state": "OH",
    }
    # The output is readable by the reference store
    assert len(ReferenceRentStore(out).load()) == 2


def test_convert_without_records_raises(tmp_path):
    path = _write(tmp_path, "zipCode,bedrooms,fairMarketRent\n43211,x,y\n")
    with pytest.raises(ReferenceDataError, match="No valid HUD records"):
        convert_hud_csv(path, tmp_path / "out.json")
