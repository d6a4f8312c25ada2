"""API tests for the probe routes and the app-level endpoints."""

import json

from ctxprobe.transports.registry import register_transport
from tests.fixtures import TEST_MODEL, HangingTransport, ThresholdTransport


def _probe_body(**overrides) -> dict:
    body = {
        "model": TEST_MODEL,
        "transport": "fake",
        "strategy": "binary",
        "min_tokens": 0,
        "max_tokens": 20_000,
        "precision": 100,
        "timeout_seconds": 5.0,
    }
    body.update(overrides)
    return body


def _parse_sse(text: str) -> list[tuple[str, dict]]:
    events = []
    for chunk in text.strip().split("\n\n"):
        lines = chunk.split("\n")
        event = lines[0].removeprefix("event: ")
        data = json.loads(lines[1].removeprefix("data: "))
        events.append((event, data))
    return events


class TestAppEndpoints:
    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_models_lists_catalog(self, client):
        resp = await client.get("/api/models")
        assert resp.status_code == 200
        models = resp.json()
        assert [m["model"] for m in models] == [TEST_MODEL]
        assert models[0]["max_context_tokens"] == 50_000

    async def test_transports(self, client):
        register_transport(ThresholdTransport(10_000))
        resp = await client.get("/api/transports")
        assert resp.json() == [{"name": "fake", "available": True, "models": []}]


class TestStartProbe:
    async def test_start_and_wait(self, client, service):
        register_transport(ThresholdTransport(10_000))
        resp = await client.post("/api/probes", json=_probe_body())
        assert resp.status_code == 202
        body = resp.json()
        assert body["status"] == "running"

        result = await service.wait(body["run_id"])
        assert result.status == "completed"
        assert 9_900 <= result.discovered_boundary <= 10_000

        resp = await client.get(f"/api/probes/{body['run_id']}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["discovered_boundary"] == result.discovered_boundary
        assert data["partial"] is False
        assert data["provider"] == "fake"

    async def test_transport_defaults_to_catalog_provider(self, client, service):
        register_transport(ThresholdTransport(10_000))
        resp = await client.post("/api/probes", json=_probe_body(transport=None))
        assert resp.status_code == 202
        result = await service.wait(resp.json()["run_id"])
        assert result.status == "completed"

    async def test_unknown_transport(self, client):
        resp = await client.post("/api/probes", json=_probe_body(transport="nope"))
        assert resp.status_code == 400
        assert "not registered" in resp.json()["detail"]

    async def test_invalid_configuration(self, client):
        register_transport(ThresholdTransport(10_000))
        resp = await client.post(
            "/api/probes", json=_probe_body(min_tokens=30_000, precision=0)
        )
        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert any("must not exceed" in e for e in detail)
        assert "precision must be > 0" in detail

    async def test_invalid_configuration_sends_nothing(self, client, service):
        transport = ThresholdTransport(10_000)
        register_transport(transport)
        await client.post("/api/probes", json=_probe_body(timeout_seconds=0))
        assert transport.calls == []
        assert service.active_runs() == []

    async def test_unknown_preset(self, client):
        register_transport(ThresholdTransport(10_000))
        resp = await client.post("/api/probes", json=_probe_body(preset="exhaustive"))
        assert resp.status_code == 422

    async def test_preset_fills_unset_fields(self, client, service):
        register_transport(ThresholdTransport(10_000))
        body = {"model": TEST_MODEL, "transport": "fake", "preset": "quick", "max_tokens": 20_000}
        resp = await client.post("/api/probes", json=body)
        assert resp.status_code == 202
        result = await service.wait(resp.json()["run_id"])
        assert result.configured_max_tokens == 20_000

    async def test_stream(self, client):
        register_transport(ThresholdTransport(10_000))
        resp = await client.post("/api/probes", json=_probe_body(stream=True))
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")

        events = _parse_sse(resp.text)
        kinds = [event for event, _ in events]
        assert kinds[-1] == "result"
        assert set(kinds[:-1]) == {"step"}

        steps = [data for event, data in events if event == "step"]
        assert [s["step"] for s in steps] == list(range(1, len(steps) + 1))
        result = events[-1][1]
        assert result["type"] == "result"
        assert result["status"] == "completed"
        assert len(result["steps"]) == len(steps)


class TestParse:
    async def test_parse(self, client):
        resp = await client.post("/api/probes/parse", json={"text": "probe test-model linear max 5k"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["model"] == TEST_MODEL
        assert data["strategy"] == "linear"
        assert data["max_tokens"] == 5_000

    async def test_parse_invalid(self, client):
        resp = await client.post("/api/probes/parse", json={"text": "probe min 50k max 10k"})
        assert resp.status_code == 422


class TestRunLookup:
    async def test_list_includes_finished_runs(self, client, service):
        register_transport(ThresholdTransport(10_000))
        run_ids = []
        for _ in range(2):
            resp = await client.post("/api/probes", json=_probe_body())
            run_ids.append(resp.json()["run_id"])
            await service.wait(run_ids[-1])

        resp = await client.get("/api/probes")
        summaries = resp.json()
        assert [s["run_id"] for s in summaries] == list(reversed(run_ids))
        assert all(s["step_count"] > 0 for s in summaries)

    async def test_get_unknown(self, client):
        resp = await client.get("/api/probes/does-not-exist")
        assert resp.status_code == 404

    async def test_cancel_running_probe(self, client, service):
        transport = HangingTransport()
        register_transport(transport)
        resp = await client.post("/api/probes", json=_probe_body())
        run_id = resp.json()["run_id"]
        await transport.started.wait()

        resp = await client.get(f"/api/probes/{run_id}")
        assert resp.json()["status"] == "running"
        assert resp.json()["partial"] is True

        resp = await client.get("/api/probes")
        assert resp.json()[0]["status"] == "running"

        resp = await client.post(f"/api/probes/{run_id}/cancel")
        assert resp.json() == {"run_id": run_id, "cancelled": True}

        result = await service.wait(run_id)
        assert result.status == "cancelled"
        assert result.termination_reason == "cancelled"

        resp = await client.post(f"/api/probes/{run_id}/cancel")
        assert resp.json()["cancelled"] is False

    async def test_cancel_unknown(self, client):
        resp = await client.post("/api/probes/does-not-exist/cancel")
        assert resp.status_code == 404
