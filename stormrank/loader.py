"""
Dataset loader (storm table -> RawRecord list)
==============================================

This module reads the Storm Data table and converts each row into a
`RawRecord` object.

Key ideas:
- We try multiple possible column names because exports differ
  (`EVTYPE` in the bulk CSV, `Event Type` in hand-made spreadsheets, ...).
- Exponent columns are read as text and blanks are kept as "" so that the
  magnitude decoder, not pandas, decides what a code means.
- The loader returns a list of immutable records; nothing edits the file.
"""

from __future__ import annotations
from typing import List, Optional
import logging
import re

import pandas as pd

from .models import RawRecord

log = logging.getLogger(__name__)

LABEL_COLUMNS = ("EVTYPE", "Event Type", "EVENT_TYPE", "Event")
FATALITY_COLUMNS = ("FATALITIES", "Fatalities", "Deaths")
INJURY_COLUMNS = ("INJURIES", "Injuries")
PROP_COLUMNS = ("PROPDMG", "Property Damage", "PROP_DMG")
PROP_EXP_COLUMNS = ("PROPDMGEXP", "Property Exponent", "PROP_DMG_EXP")
CROP_COLUMNS = ("CROPDMG", "Crop Damage", "CROP_DMG")
CROP_EXP_COLUMNS = ("CROPDMGEXP", "Crop Exponent", "CROP_DMG_EXP")


def _to_str(x) -> str:
    if pd.isna(x): return ""
    return str(x).strip()


def _cell(x):
    """Numeric cells pass through; blanks become None for the decoder."""
    if pd.isna(x): return None
    return x


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise KeyError(f"Missing required column. Tried={names}. Available={cols}")


def records_from_frame(df: pd.DataFrame) -> List[RawRecord]:
    """Convert an already-loaded table into RawRecords."""
    df = df.rename(columns={c: str(c).strip() for c in df.columns})

    label_col = _col(df, *LABEL_COLUMNS)
    fat_col = _col(df, *FATALITY_COLUMNS)
    inj_col = _col(df, *INJURY_COLUMNS)
    prop_col = _col(df, *PROP_COLUMNS)
    prop_exp_col = _col(df, *PROP_EXP_COLUMNS)
    crop_col = _col(df, *CROP_COLUMNS)
    crop_exp_col = _col(df, *CROP_EXP_COLUMNS)

    records: List[RawRecord] = []
    for row in df[[label_col, fat_col, inj_col, prop_col, prop_exp_col, crop_col, crop_exp_col]].itertuples(index=False):
        label, fat, inj, prop, prop_exp, crop, crop_exp = row
        records.append(RawRecord(
            event_label=_to_str(label),
            fatalities=_cell(fat),
            injuries=_cell(inj),
            property_coefficient=_cell(prop),
            # keep the raw text: " " and "" are different to the decoder
            property_exponent_code="" if pd.isna(prop_exp) else str(prop_exp),
            crop_coefficient=_cell(crop),
            crop_exponent_code="" if pd.isna(crop_exp) else str(crop_exp),
        ))
    return records


def load_storm_table(path: str, nrows: Optional[int] = None) -> List[RawRecord]:
    """
    Load a Storm Data table from CSV (optionally bz2/gzip/zip compressed) or XLSX.

    The bulk NOAA file `repdata_data_StormData.csv.bz2` can be passed as is;
    pandas infers the compression from the extension.
    """
    if str(path).lower().endswith((".xlsx", ".xlsm")):
        df = pd.read_excel(path, engine="openpyxl", dtype=str, nrows=nrows)
    else:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, nrows=nrows)
    log.info("Loaded %d rows from %s", len(df), path)
    return records_from_frame(df)
