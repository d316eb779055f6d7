import asyncio
import contextlib
import io
import json
import zipfile

import httpx
import pytest

from zoneview.config import Settings
from zoneview.services.pipeline import PipelineState, SelectionPipeline, run_cycle_stages, PipelineContext


class FakeSource:
    """In-memory stand-in for the HTTP/disk data source."""

    def __init__(self, files):
        self.files = dict(files)
        self.requests = []

    async def fetch_bytes(self, location):
        self.requests.append(location)
        await asyncio.sleep(0)
        payload = self.files.get(location)
        if payload is None:
            raise FileNotFoundError(location)
        if isinstance(payload, Exception):
            raise payload
        return payload if isinstance(payload, bytes) else payload.encode("utf-8")


def _collection(features):
    return json.dumps({"type": "FeatureCollection", "features": features})


@pytest.fixture
def files(layer_features):
    config = {
        "layers": [
            {"url": "https://zones.example/base.geojson", "day": "Monday", "tier": "base"},
            {"url": "https://zones.example/quads.geojson", "day": "Monday", "tier": "quadrant"},
            {"url": "https://zones.example/subs.geojson", "day": "Monday", "tier": "subquadrant"},
        ],
        "selection": {"url": "https://zones.example/selection.csv"},
        "assignments": {"url": "https://zones.example/selection.csv", "seed": {"W2": "Seed Driver"}},
        "customers": {"url": "https://zones.example/customers.csv"},
    }
    return {
        "https://zones.example/app.config.json": json.dumps(config),
        "https://zones.example/base.geojson": _collection(layer_features["base"]),
        "https://zones.example/quads.geojson": _collection(layer_features["quadrant"]),
        "https://zones.example/subs.geojson": _collection(layer_features["subquadrant"]),
        "https://zones.example/selection.csv": "\ufeffDriver,Zone Keys\nAlex,\"W1_NE_TL, W1\"\nSam,W1_SW;W2\n",
        "https://zones.example/customers.csv": (
            "Customer,Verified Coordinates,Order Note\n"
            "A,\"1.75, 1.25\",ring bell\n"
            "B,\"0.5, 0.5\",\n"
            "C,\"0.5, 3.0\",\n"
            "D,bad,\n"
            "E,\"9, 9\",\n"
        ),
    }


def _pipeline(files, **settings_overrides):
    source = FakeSource(files)
    app_settings = Settings(**settings_overrides)
    return SelectionPipeline("https://zones.example/app.config.json", source, app_settings=app_settings), source


def test_full_cycle_resolves_selection_and_tallies_drivers(files):
    pipeline, _ = _pipeline(files)

    state = asyncio.run(pipeline.run_cycle())

    assert state.cycle == 1
    assert len(state.catalog) == 10
    assert state.selection.keys == ("W1_NE_TL", "W1", "W1_SW", "W2")
    assert state.resolution.active_keys == ("W1_NE_TL", "W1_SW", "W2")
    assert state.resolution.overridden_keys == ("W1",)
    assert state.assignments["W2"] == "Sam"
    assert state.classification.inside_selected == 3
    assert state.classification.outside_selected == 1
    assert state.tally.counts == {"Alex": 1, "Sam": 2}
    assert state.warnings == ()
    assert pipeline.state is state


def test_failed_layer_does_not_block_other_layers(files):
    files["https://zones.example/quads.geojson"] = httpx.ConnectError("boom")
    pipeline, _ = _pipeline(files)

    state = asyncio.run(pipeline.run_cycle())

    assert len(state.catalog) == 6
    assert any("failed to load" in warning for warning in state.warnings)
    assert state.resolution.active_keys == ("W1_NE_TL", "W2")
    assert state.resolution.unmatched_keys == ("W1_SW",)


def test_missing_selection_source_shows_everything(files):
    del files["https://zones.example/selection.csv"]
    pipeline, _ = _pipeline(files)

    state = asyncio.run(pipeline.run_cycle())

    assert state.selection.is_empty
    assert state.resolution.fallback
    assert len(state.resolution.visible_zones) == 10
    assert state.classification.inside_selected == 0
    assert state.assignments == {"W2": "Seed Driver"}
    assert any("Selection source failed" in warning for warning in state.warnings)


def test_many_unmatched_keys_raise_a_warning(files):
    files["https://zones.example/selection.csv"] = "Zone Keys\nQ1\nQ2\nW2\n"
    pipeline, _ = _pipeline(files, unmatched_warning_ratio=0.5)

    state = asyncio.run(pipeline.run_cycle())

    assert state.resolution.active_keys == ("W2",)
    assert any("matched no zone" in warning for warning in state.warnings)


def test_customer_failure_keeps_previous_points(files):
    pipeline, source = _pipeline(files)
    first = asyncio.run(pipeline.run_cycle())
    source.files["https://zones.example/customers.csv"] = httpx.ReadTimeout("slow")

    second = asyncio.run(pipeline.run_cycle())

    assert second.cycle == 2
    assert second.customers == first.customers
    assert any("Customer sheet failed" in warning for warning in second.warnings)


def test_layers_are_not_refetched_unless_requested(files):
    pipeline, source = _pipeline(files)
    asyncio.run(pipeline.run_cycle())
    source.requests.clear()

    asyncio.run(pipeline.run_cycle())
    assert "https://zones.example/base.geojson" not in source.requests

    asyncio.run(pipeline.run_cycle(reload_layers=True))
    assert "https://zones.example/base.geojson" in source.requests


def test_concurrent_cycle_requests_are_dropped(files):
    pipeline, _ = _pipeline(files)

    async def run_two():
        return await asyncio.gather(pipeline.run_cycle(), pipeline.run_cycle())

    first, second = asyncio.run(run_two())

    assert first is not None and first.cycle == 1
    assert second is None
    assert pipeline.state.cycle == 1


def test_stages_return_new_snapshots(files):
    source = FakeSource(files)
    ctx = PipelineContext(source=source, config_location="https://zones.example/app.config.json", settings=Settings())
    initial = PipelineState()

    state = asyncio.run(run_cycle_stages(initial, ctx))

    assert initial.cycle == 0
    assert initial.resolution is None
    assert state.cycle == 1
    assert state.completed_at is not None


def test_resolve_keys_leaves_snapshot_untouched(files):
    pipeline, _ = _pipeline(files)
    state = asyncio.run(pipeline.run_cycle())

    selection, result = pipeline.resolve_keys(["W1_NE", "W1_NE_TL"])

    assert result.active_keys == ("W1_NE_TL",)
    assert pipeline.state is state
    assert state.selection.keys != selection.keys


def test_sheet_that_is_not_a_workbook_degrades_to_fallback(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("hello.txt", "not a workbook")
    files["https://zones.example/selection.csv"] = buffer.getvalue()
    pipeline, _ = _pipeline(files)

    state = asyncio.run(pipeline.run_cycle())

    assert state.cycle == 1
    assert state.resolution.fallback
    assert state.assignments == {"W2": "Seed Driver"}
    assert any("Selection source failed" in warning for warning in state.warnings)
    assert any("Assignment sheet failed" in warning for warning in state.warnings)


def test_feature_with_non_mapping_properties_is_skipped(files, layer_features, box_feature):
    broken = box_feature("W9", 5, 5, 6, 6)
    broken["properties"] = ["W9"]
    files["https://zones.example/base.geojson"] = _collection([*layer_features["base"], broken])
    pipeline, _ = _pipeline(files)

    state = asyncio.run(pipeline.run_cycle())

    assert len(state.catalog) == 10
    assert state.resolution.active_keys == ("W1_NE_TL", "W1_SW", "W2")


def test_oversized_customer_field_becomes_a_warning(files):
    files["https://zones.example/customers.csv"] = 'Verified Coordinates\n"' + "x" * 200_000 + '"\n'
    pipeline, _ = _pipeline(files)

    state = asyncio.run(pipeline.run_cycle())

    assert state.customers == ()
    assert state.classification.total_points == 0
    assert any("Customer sheet failed" in warning for warning in state.warnings)


async def _run_until_cycle(pipeline, cycle, interval=0.01):
    task = asyncio.create_task(pipeline.run_periodic(interval))
    try:
        while pipeline.state is None or pipeline.state.cycle < cycle:
            await asyncio.sleep(interval)
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def test_periodic_refresh_advances_cycles(files):
    pipeline, source = _pipeline(files)

    asyncio.run(asyncio.wait_for(_run_until_cycle(pipeline, 3), timeout=5))

    assert pipeline.state.cycle >= 3
    assert source.requests.count("https://zones.example/base.geojson") == 1


class FlakySource(FakeSource):
    def __init__(self, files, failures):
        super().__init__(files)
        self.failures = failures

    async def fetch_bytes(self, location):
        if self.failures:
            self.failures -= 1
            raise RuntimeError("source exploded")
        return await super().fetch_bytes(location)


def test_periodic_refresh_survives_a_failing_cycle(files):
    source = FlakySource(files, failures=2)
    pipeline = SelectionPipeline("https://zones.example/app.config.json", source, app_settings=Settings())

    asyncio.run(asyncio.wait_for(_run_until_cycle(pipeline, 1), timeout=5))

    assert source.failures == 0
    assert pipeline.state.cycle >= 1
    assert pipeline.state.resolution.active_keys == ("W1_NE_TL", "W1_SW", "W2")
    assert not pipeline.busy
