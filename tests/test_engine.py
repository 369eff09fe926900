"""Tests for the pipeline driver (StormRank)."""

import csv
import json
import math

import pytest

from stormrank.engine import PipelineConfig, StormRank, categorize, run_pipeline, summarize_shard
from stormrank.magnitude import normalize_record
from tests.factories import raw


def test_end_to_end_scenario(scenario_records):
    decoded = [normalize_record(r).property_damage for r in scenario_records]
    assert decoded == [10_000, 3_000_000, 0]

    engine = StormRank(scenario_records)
    assert engine.vocabulary == {"TORNADO": "Tornado", "FLOOD": "Flood", "EXCESSIVE HEAT": "Heat"}
    assert set(engine.aggregates) == {"Tornado", "Flood", "Heat"}

    ranked = {r.category: r for r in engine.ranked()}
    assert ranked["Tornado"].pct_fatalities == pytest.approx(5 / 6)
    assert ranked["Heat"].pct_fatalities == pytest.approx(1 / 6)
    assert ranked["Flood"].pct_injuries == pytest.approx(1.0)
    assert ranked["Flood"].pct_crop_damage == pytest.approx(1.0)


def test_harmless_records_are_dropped(mixed_records):
    engine = StormRank(mixed_records)
    assert engine.dropped == 1
    assert engine.kept == len(mixed_records) - 1
    assert "Fog" not in engine.aggregates
    assert "DENSE FOG" not in engine.vocabulary


def test_categories_of_mixed_sample(mixed_records):
    engine = StormRank(mixed_records)
    assert set(engine.aggregates) == {
        "Tornado", "Storm", "Flood", "Heat", "Hail", "Drought", "Wind", "Marsh Erosion",
    }
    tornado = engine.aggregates["Tornado"]
    assert tornado.total_fatalities == 6
    assert tornado.total_injuries == 34
    assert tornado.total_property_damage == pytest.approx(2_600_000)
    assert engine.aggregates["Hail"].total_property_damage == 0
    assert engine.aggregates["Hail"].total_crop_damage == 40_000


def test_categorize_fills_vocabulary():
    vocab = {}
    out = list(categorize([raw("TSTM WIND", inj=1), raw("TSTM WIND", fat=1), raw("HAIL")], vocabulary=vocab))
    assert len(out) == 2
    assert vocab == {"TSTM WIND": "Storm"}


def test_empty_input():
    engine = StormRank([])
    assert engine.aggregates == {}
    assert engine.ranked() == []
    assert all(math.isnan(f) for f in engine.floors(3).values())
    engine.filter_dominant(3)
    assert engine.state.categories == []


def test_filter_dominant_and_history(mixed_records):
    engine = StormRank(mixed_records)
    everything = engine.state.categories[:]
    floors = engine.filter_dominant(1)
    assert floors["fatalities"] == 10
    assert set(engine.state.categories) == {"Heat", "Tornado", "Flood", "Drought"}

    assert engine.undo()
    assert engine.state.categories == everything
    assert engine.redo()
    assert set(engine.state.categories) == {"Heat", "Tornado", "Flood", "Drought"}
    assert not engine.redo()

    engine.reset()
    assert engine.state.categories == everything
    assert engine.undo()
    assert len(engine.state.categories) == 4


def test_keep_is_case_insensitive(mixed_records):
    engine = StormRank(mixed_records)
    engine.keep(["tornado", "HEAT", "Nope"])
    assert engine.state.categories == ["Heat", "Tornado"]


def test_ranked_denominator_scopes(mixed_records):
    engine = StormRank(mixed_records)
    engine.keep(["Tornado", "Heat"])
    working = {r.category: r for r in engine.ranked("working")}
    full = {r.category: r for r in engine.ranked("full")}
    assert working["Tornado"].pct_fatalities == pytest.approx(6 / 16)
    assert full["Tornado"].pct_fatalities == pytest.approx(6 / 18)
    # Neither kept category has crop damage: undefined over the working set only
    assert math.isnan(working["Tornado"].pct_crop_damage)
    assert full["Tornado"].pct_crop_damage == 0.0


def test_ranked_rejects_unknown_scope(mixed_records):
    with pytest.raises(ValueError):
        StormRank(mixed_records).ranked("partial")
    with pytest.raises(ValueError):
        StormRank(mixed_records, PipelineConfig(denominator="partial"))


def test_ranked_display_order(mixed_records):
    engine = StormRank(mixed_records)
    order = [r.category for r in engine.ranked()]
    assert order[:3] == ["Heat", "Tornado", "Flood"]


def test_top(mixed_records):
    engine = StormRank(mixed_records)
    assert [r.category for r in engine.top("crop_damage", 2)] == ["Drought", "Flood"]


def test_sharded_run_matches_single_pass(mixed_records):
    single = StormRank(mixed_records)
    sharded = StormRank(mixed_records, PipelineConfig(shard_size=3))
    assert sharded.aggregates == single.aggregates
    assert sharded.vocabulary == single.vocabulary
    assert (sharded.kept, sharded.dropped) == (single.kept, single.dropped)


def test_process_pool_matches_single_pass(mixed_records):
    single = StormRank(mixed_records)
    pooled = StormRank(mixed_records, PipelineConfig(workers=2, shard_size=4))
    assert pooled.aggregates == single.aggregates


def test_summarize_shard(scenario_records):
    res = summarize_shard(scenario_records)
    assert res.kept == 3 and res.dropped == 0
    assert set(res.partial) == {"Tornado", "Flood", "Heat"}


def test_run_pipeline(mixed_records):
    ranked, floors = run_pipeline(mixed_records, k=1)
    assert {r.category for r in ranked} == {"Heat", "Tornado", "Flood", "Drought"}
    assert floors["crop_damage"] == 2e9
    for m in ("fatalities", "property_damage", "crop_damage"):
        assert sum(r.share(m) for r in ranked) == pytest.approx(1.0)


def test_export_csv(tmp_path, scenario_records):
    engine = StormRank(scenario_records)
    out = tmp_path / "ranked.csv"
    engine.export_csv(str(out))
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert {r["category"] for r in rows} == {"Tornado", "Flood", "Heat"}
    tornado = next(r for r in rows if r["category"] == "Tornado")
    assert float(tornado["pct_fatalities"]) == pytest.approx(5 / 6)


def test_export_nan_shares(tmp_path):
    engine = StormRank([raw("TORNADO", fat=2), raw("HEAT", fat=1)])
    csv_out, json_out = tmp_path / "r.csv", tmp_path / "r.json"
    engine.export_csv(str(csv_out))
    engine.export_json(str(json_out))
    with open(csv_out, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert all(r["pct_injuries"] == "" for r in rows)
    payload = json.loads(json_out.read_text(encoding="utf-8"))
    assert all(p["shares"]["injuries"] is None for p in payload)
    assert payload[0]["category"] == "Tornado"
    assert payload[0]["shares"]["fatalities"] == pytest.approx(2 / 3)


def test_fractional_damages_stable_across_order_and_shards():
    import random
    rng = random.Random(5)
    records = [
        raw(rng.choice(["FLOOD", "FLASH FLOOD", "TSTM WIND"]), inj=1,
            prop=round(rng.uniform(0.01, 99.99), 2), prop_exp=rng.choice(["K", "H"]),
            crop=rng.choice([32.2, 65.01, 0.5]), crop_exp="K")
        for _ in range(150)
    ]
    baseline = StormRank(records).aggregates
    for size in (1, 13, 64):
        shuffled = records[:]
        rng.shuffle(shuffled)
        assert StormRank(shuffled, PipelineConfig(shard_size=size)).aggregates == baseline
