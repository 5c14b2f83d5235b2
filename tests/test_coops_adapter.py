"""Tests for the CO-OPS tide/current/meteorological adapter."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from features.common.exceptions.source_exceptions import (
    FeedUnavailableError,
    MalformedPayloadError,
    SourceError,
)
from features.common.models.reading_types import Provenance
from features.sources.services.coops_client import TideStationAdapter


def _series(count: int, **values) -> dict:
    return {
        "data": [
            {"t": f"2024-04-15 {i // 10:02d}:{(i % 10) * 6:02d}", **values}
            for i in range(count)
        ]
    }


WATER_LEVEL = {"data": [{"t": "2024-04-15 11:54", "v": "1.204", "s": "0.003"}]}
CURRENTS = {"data": [{"t": "2024-04-15 11:54", "s": "180.0", "d": "225"}]}
MET = {"data": [{"t": "2024-04-15 11:48", "s": "6.2", "d": "290", "p": "1013.5", "vis": "10"}]}


class FakeCoopsAdapter(TideStationAdapter):
    """Serves canned payloads per product instead of calling NOAA."""

    def __init__(self, payloads: dict, **kwargs) -> None:
        super().__init__(**kwargs)
        self.payloads = payloads
        self.requested = []

    async def _get_json(self, url, params=None):
        product = params["product"]
        self.requested.append(params)
        payload = self.payloads.get(product)
        if isinstance(payload, Exception):
            raise payload
        return payload


class TestTideStationAdapter:
    @pytest.mark.asyncio
    async def test_maps_each_feed_to_its_own_fields(self) -> None:
        adapter = FakeCoopsAdapter({"water_level": WATER_LEVEL, "currents": CURRENTS, "met": MET})
        readings = await adapter.fetch()

        by_field = {tuple(sorted(r.measurements())): r for r in readings}
        water = by_field[("water_level",)]
        currents = by_field[("current_direction", "current_speed")]
        met = by_field[("pressure", "visibility", "wind_direction", "wind_speed")]

        assert water.water_level == 1.204
        assert water.source == Provenance.TIDE_STATION
        assert currents.current_speed == 1.8  # cm/s to m/s
        assert currents.current_direction == 225.0
        assert met.source == Provenance.METEOROLOGICAL
        assert met.visibility == pytest.approx(18.52)
        assert met.timestamp == datetime(2024, 4, 15, 11, 48, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_requests_today_for_the_station(self) -> None:
        adapter = FakeCoopsAdapter(
            {"water_level": WATER_LEVEL, "currents": CURRENTS, "met": MET},
            station_id="9410170",
        )
        await adapter.fetch()

        assert {p["product"] for p in adapter.requested} == {"water_level", "currents", "met"}
        for params in adapter.requested:
            assert params["station"] == "9410170"
            assert params["date"] == "today"
            assert params["format"] == "json"
        water = next(p for p in adapter.requested if p["product"] == "water_level")
        assert water["datum"] == "MLLW"

    @pytest.mark.asyncio
    async def test_keeps_only_most_recent_24_samples(self) -> None:
        adapter = FakeCoopsAdapter(
            {"water_level": _series(40, v="1.0")},
            products=["water_level"],
        )
        readings = await adapter.fetch()

        assert len(readings) == 24
        assert readings[-1].timestamp == datetime(2024, 4, 15, 3, 54, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_one_failed_feed_does_not_abort_siblings(self) -> None:
        adapter = FakeCoopsAdapter({
            "water_level": WATER_LEVEL,
            "currents": FeedUnavailableError("coops", "HTTP 503"),
            "met": MET,
        })
        readings = await adapter.fetch()

        assert all(r.current_speed is None for r in readings)
        assert any(r.water_level is not None for r in readings)
        assert any(r.wind_speed is not None for r in readings)

    @pytest.mark.asyncio
    async def test_error_object_counts_as_feed_failure(self) -> None:
        adapter = FakeCoopsAdapter({
            "water_level": {"error": {"message": "No data was found."}},
            "currents": CURRENTS,
            "met": MET,
        })
        readings = await adapter.fetch()
        assert all(r.water_level is None for r in readings)

    @pytest.mark.asyncio
    async def test_all_feeds_failing_fails_the_adapter(self) -> None:
        adapter = FakeCoopsAdapter({
            "water_level": FeedUnavailableError("coops", "timeout"),
            "currents": {"unexpected": True},
            "met": FeedUnavailableError("coops", "timeout"),
        })
        with pytest.raises(SourceError):
            await adapter.fetch()

    @pytest.mark.asyncio
    async def test_missing_data_series_is_malformed(self) -> None:
        adapter = FakeCoopsAdapter({"currents": {"metadata": {}}}, products=["currents"])
        with pytest.raises(MalformedPayloadError):
            await adapter.fetch()

    @pytest.mark.asyncio
    async def test_bad_samples_are_dropped_individually(self) -> None:
        payload = {"data": [
            {"t": "not a time", "s": "100", "d": "90"},
            {"t": "2024-04-15 10:00", "s": "", "d": ""},
            "garbage",
            {"t": "2024-04-15 10:06", "s": "50", "d": "90"},
        ]}
        adapter = FakeCoopsAdapter({"currents": payload}, products=["currents"])
        readings = await adapter.fetch()

        assert len(readings) == 1
        assert readings[0].current_speed == 0.5

    @pytest.mark.asyncio
    async def test_zero_values_are_kept(self) -> None:
        payload = {"data": [{"t": "2024-04-15 10:00", "s": "0", "d": "0"}]}
        adapter = FakeCoopsAdapter({"currents": payload}, products=["currents"])
        reading = (await adapter.fetch())[0]
        assert reading.current_speed == 0.0
        assert reading.current_direction == 0.0
