"""Tests for reading Storm Data tables into RawRecords."""

import io

import pandas as pd
import pytest

from stormrank.loader import load_storm_table, records_from_frame
from stormrank.magnitude import decode

CSV_TEXT = (
    "STATE__,EVTYPE,FATALITIES,INJURIES,PROPDMG,PROPDMGEXP,CROPDMG,CROPDMGEXP\n"
    "1,TORNADO,5,0,10,K,0,\n"
    "1,FLOOD,0,2,3,M,1,K\n"
    "2,EXCESSIVE HEAT,1,0,0,,0,\n"
    "2,HAIL,0,0,5,?,0,\n"
)


def test_load_csv(tmp_path):
    path = tmp_path / "storm.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    records = load_storm_table(str(path))
    assert [r.event_label for r in records] == ["TORNADO", "FLOOD", "EXCESSIVE HEAT", "HAIL"]
    assert records[0].property_exponent_code == "K"
    assert records[2].property_exponent_code == ""
    assert records[3].property_exponent_code == "?"
    assert [decode(r.property_coefficient, r.property_exponent_code) for r in records] == [
        10_000, 3_000_000, 0, 0,
    ]


def test_load_compressed_csv(tmp_path):
    path = tmp_path / "storm.csv.bz2"
    pd.read_csv(io.StringIO(CSV_TEXT), dtype=str, keep_default_na=False).to_csv(
        path, index=False, compression="bz2")
    records = load_storm_table(str(path), nrows=2)
    assert len(records) == 2
    assert records[1].crop_exponent_code == "K"


def test_alias_columns():
    df = pd.DataFrame({
        " Event Type ": ["Tornado"],
        "Fatalities": [1],
        "Injuries": [2],
        "Property Damage": [2.5],
        "Property Exponent": ["m"],
        "Crop Damage": [None],
        "Crop Exponent": [None],
    })
    (rec,) = records_from_frame(df)
    assert rec.event_label == "Tornado"
    assert rec.property_exponent_code == "m"
    assert rec.crop_coefficient is None
    assert rec.crop_exponent_code == ""


def test_missing_column():
    df = pd.DataFrame({"EVTYPE": ["HAIL"], "FATALITIES": [0]})
    with pytest.raises(KeyError, match="Missing required column"):
        records_from_frame(df)


def test_load_xlsx(tmp_path):
    pytest.importorskip("openpyxl")
    path = tmp_path / "storm.xlsx"
    pd.read_csv(io.StringIO(CSV_TEXT), dtype=str, keep_default_na=False).to_excel(
        path, index=False, engine="openpyxl")
    records = load_storm_table(str(path))
    assert records[1].event_label == "FLOOD"
    assert decode(records[1].property_coefficient, records[1].property_exponent_code) == 3_000_000
