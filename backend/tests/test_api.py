"""
HTTP API tests against an in-memory engine with no worker running.
"""

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from app.api.dependencies import get_engine, get_ws_engine
from app.main import app
from app.services.engine import Engine
from app.services.job_queue import InMemoryJobQueue

from conftest import USER, WORKSPACE, FakeStorage


GRAPH = {
    "nodes": [
        {"id": "txt", "type": "text-input", "data": {"parameters": {"value": "a cat"}}},
        {"id": "enh", "type": "prompt-enhancer", "data": {"parameters": {}}},
    ],
    "edges": [
        {"id": "e1", "source": "txt", "sourceHandle": "text", "target": "enh", "targetHandle": "text"},
    ],
}


@pytest.fixture
def engine(ctx):
    return Engine(ctx=ctx, queue=InMemoryJobQueue(), storage=FakeStorage())


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_ws_engine] = lambda: engine
    # Not entered as a context manager, so the lifespan never builds a real engine.
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    response = client.get("/api/")

    assert response.status_code == 200
    assert response.json() == {"message": "Haus Node workflow engine"}


def test_submit_job_is_accepted_and_queued(client, engine):
    response = client.post(f"/api/v1/workspaces/{WORKSPACE}/jobs", json={"graphSnapshot": GRAPH, "userId": USER})

    assert response.status_code == 202
    data = response.json()["data"]
    assert data["status"] == "queued"
    assert data["estimatedCredits"] == 1
    assert engine.queue.qsize() == 1

    job = client.get(f"/api/v1/jobs/{data['jobId']}").json()["data"]
    assert job["status"] == "queued"
    assert job["workspaceId"] == WORKSPACE

    listed = client.get(f"/api/v1/workspaces/{WORKSPACE}/jobs").json()["data"]
    assert [j["id"] for j in listed] == [data["jobId"]]


def test_submit_job_without_credits_is_402(client, credit_store, engine):
    credit_store.set_balance(WORKSPACE, 0)

    response = client.post(f"/api/v1/workspaces/{WORKSPACE}/jobs", json={"graphSnapshot": GRAPH, "userId": USER})

    assert response.status_code == 402
    assert response.json()["detail"] == {"message": "Insufficient credits", "required": 1, "available": 0}
    assert engine.queue.qsize() == 0


def test_submit_job_to_unknown_workspace_is_404(client):
    response = client.post("/api/v1/workspaces/missing/jobs", json={"graphSnapshot": GRAPH, "userId": USER})

    assert response.status_code == 404


def test_submit_job_requires_user_id(client, engine):
    response = client.post(f"/api/v1/workspaces/{WORKSPACE}/jobs", json={"graphSnapshot": GRAPH})

    assert response.status_code == 422
    assert engine.queue.qsize() == 0


def test_submit_empty_graph_is_400(client):
    response = client.post(f"/api/v1/workspaces/{WORKSPACE}/jobs", json={"graphSnapshot": {"nodes": [], "edges": []}, "userId": USER})

    assert response.status_code == 400


def test_unknown_job_is_404(client):
    assert client.get("/api/v1/jobs/nope").status_code == 404
    assert client.get("/api/v1/jobs/nope/events").status_code == 404


async def _finished_job(client, engine) -> str:
    job_id = client.post(f"/api/v1/workspaces/{WORKSPACE}/jobs", json={"graphSnapshot": GRAPH, "userId": USER}).json()["data"]["jobId"]
    await engine.ctx.jobs.update(job_id, status="running")
    await engine.ctx.jobs.update(job_id, status="completed")
    return job_id


@pytest.mark.asyncio
async def test_event_stream_for_finished_job_sends_ping_and_closes(client, engine):
    job_id = await _finished_job(client, engine)

    response = client.get(f"/api/v1/jobs/{job_id}/events")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.text.startswith("event: ping\n")
    assert '"status":"completed"' in response.text
    assert engine.broadcaster.subscriber_count(job_id) == 0


@pytest.mark.asyncio
async def test_websocket_for_finished_job_sends_ping_and_closes(client, engine):
    job_id = await _finished_job(client, engine)

    with client.websocket_connect(f"/api/v1/ws/jobs/{job_id}") as websocket:
        ping = websocket.receive_json()
        assert ping["event"] == "ping"
        assert ping["payload"] == {"jobId": job_id, "status": "completed"}
        with pytest.raises(WebSocketDisconnect):
            websocket.receive_text()

    assert engine.broadcaster.subscriber_count(job_id) == 0


def test_websocket_for_unknown_job_is_refused(client, engine):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/v1/ws/jobs/nope") as websocket:
            websocket.receive_text()

    assert exc_info.value.code == 1008
    assert engine.broadcaster.subscriber_count("nope") == 0


def test_node_catalogue(client):
    listing = client.get("/api/v1/nodes").json()
    assert listing["total"] == len(listing["data"])
    assert "image-gen" in listing["categories"]

    node = client.get("/api/v1/nodes/flux-pro").json()["data"]
    assert node["creditCost"] == 4

    assert client.get("/api/v1/nodes/not-a-node").status_code == 404
    in_text = client.get("/api/v1/nodes/category/text").json()["data"]
    assert "prompt-enhancer" in {n["id"] for n in in_text}


def test_validate_workflow(client):
    ok = client.post("/api/v1/workflows/validate", json=GRAPH)
    assert ok.status_code == 200
    assert ok.json()["data"]["execution_order"] == ["txt", "enh"]

    cyclic = dict(GRAPH, edges=GRAPH["edges"] + [
        {"id": "e2", "source": "enh", "sourceHandle": "text", "target": "txt", "targetHandle": "value"},
    ])
    bad = client.post("/api/v1/workflows/validate", json=cyclic)
    assert bad.status_code == 422
    assert bad.json()["detail"]["message"] == "Workflow validation failed"


def test_credits_and_topup(client):
    assert client.get(f"/api/v1/workspaces/{WORKSPACE}/credits").json()["data"]["balance"] == 100

    topped = client.post(f"/api/v1/workspaces/{WORKSPACE}/credits/topup", json={"amount": 50})
    assert topped.json()["data"]["balance"] == 150

    history = client.get(f"/api/v1/workspaces/{WORKSPACE}/credits").json()["data"]["transactions"]
    assert history[0]["amount"] == 50
    assert history[0]["reason"] == "manual-topup"

    assert client.post(f"/api/v1/workspaces/{WORKSPACE}/credits/topup", json={"amount": 0}).status_code == 422
    assert client.get("/api/v1/workspaces/missing/credits").status_code == 404


def test_presigned_upload(client):
    ok = client.post("/api/v1/uploads/presigned", json={"contentType": "image/png"})
    assert ok.status_code == 200
    assert ok.json()["publicUrl"].startswith("https://cdn.test/user-uploads/")

    assert client.post("/api/v1/uploads/presigned", json={"contentType": "text/html"}).status_code == 400
    assert client.post("/api/v1/uploads/presigned", json={"contentType": "image/png", "folder": "../etc"}).status_code == 400
