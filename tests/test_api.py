import asyncio

from fastapi.testclient import TestClient

from study_note_gen.api.app import app, service
from study_note_gen.errors import GenerationError, QuotaCode, QuotaSignal
from study_note_gen.models import ContentKind, GenerationRequest, GenerationResult

client = TestClient(app)


def test_healthz() -> None:
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_generate_forwards_request(monkeypatch) -> None:
    captured: dict[str, GenerationRequest] = {}

    async def fake_generate(request: GenerationRequest) -> GenerationResult:
        captured["request"] = request
        return GenerationResult(kind=request.kind, content=[{"front": "a", "back": "b"}], meta={"items": 1})

    monkeypatch.setattr(service, "generate", fake_generate)

    resp = client.post(
        "/generate",
        json={
            "kind": "flashcards",
            "content": "--- Document: a.pdf ---\nnotes",
            "documents": [{"name": "a.pdf", "type": "pdf"}],
            "target_count": 1,
        },
    )
    assert resp.status_code == 200
    assert resp.json() == {"kind": "flashcards", "content": [{"front": "a", "back": "b"}], "meta": {"items": 1}}
    request = captured["request"]
    assert request.kind == ContentKind.FLASHCARDS
    assert request.target_count == 1
    assert request.documents[0].hint() == "a.pdf [pdf]"


def test_quota_maps_to_429(monkeypatch) -> None:
    async def fake_generate(request: GenerationRequest) -> GenerationResult:
        raise QuotaSignal(QuotaCode.DAILY_LIMIT_REACHED, limit=15, reset_at="2025-01-02T00:00:00Z")

    monkeypatch.setattr(service, "generate", fake_generate)

    resp = client.post("/generate", json={"kind": "summary", "content": "notes"})
    assert resp.status_code == 429
    assert resp.json() == {
        "code": "DAILY_LIMIT_REACHED",
        "message": "Daily limit reached",
        "limit": 15,
        "remaining": 0,
        "resetAt": "2025-01-02T00:00:00Z",
    }


def test_generation_error_maps_to_502(monkeypatch) -> None:
    async def fake_generate(request: GenerationRequest) -> GenerationResult:
        raise GenerationError("upstream down")

    monkeypatch.setattr(service, "generate", fake_generate)

    resp = client.post("/generate", json={"kind": "chat", "messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 502
    assert resp.json() == {"error": "upstream down"}


def test_generate_validates_input() -> None:
    assert client.post("/generate", json={"kind": "mindmap", "content": "x"}).status_code == 422
    duplicate = [{"name": "a.pdf"}, {"name": "a.pdf"}]
    assert client.post("/generate", json={"kind": "summary", "content": "x", "documents": duplicate}).status_code == 422


def test_note_study_content_round_trip(monkeypatch) -> None:
    captured: dict = {}

    async def fake_generate_for_note(note_id, corpus, documents=None, detail_level=None) -> dict:
        captured.update(note_id=note_id, documents=documents, detail_level=detail_level)
        content = await service.store.save_study_content(note_id, {"summary": "<p>s</p>"})
        return {
            "note_id": note_id,
            "language": "en",
            "skipped": False,
            "generated": ["summary"],
            "errors": {},
            "content": content.model_dump(),
        }

    monkeypatch.setattr(service, "generate_for_note", fake_generate_for_note)

    resp = client.post(
        "/notes/note-42/study-content",
        json={"content": "notes", "documents": [{"name": "a.pdf", "type": "pdf"}], "detail_level": "concise"},
    )
    assert resp.status_code == 200
    assert resp.json()["generated"] == ["summary"]
    assert captured["note_id"] == "note-42"
    assert captured["documents"] == [{"name": "a.pdf", "type": "pdf"}]

    stored = client.get("/notes/note-42/study-content").json()
    assert stored["summary"] == "<p>s</p>"
    assert stored["flashcards"] == []


def test_note_single_kind_uses_generate_content_type(monkeypatch) -> None:
    async def fake_generate_content_type(note_id, kind, corpus, documents=None, detail_level=None, target_count=None):
        return await service.store.save_study_content(note_id, {"exercises": [{"question": "q", "solution": "s"}]})

    monkeypatch.setattr(service, "generate_content_type", fake_generate_content_type)

    resp = client.post("/notes/note-7/study-content", json={"content": "notes", "kind": "exercises"})
    assert resp.status_code == 200
    assert resp.json()["content"]["exercises"] == [{"question": "q", "solution": "s"}]


def test_get_unknown_note_is_empty() -> None:
    assert client.get("/notes/missing/study-content").json() == asyncio.run(
        service.store.get_study_content("missing")
    ).model_dump()
