"""
test_persistence.py -- In-memory store and the REST store over httpx.MockTransport.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from iching.errors import PersistenceError
from iching.models import AIInterpretation, ConsultationRecord, ConsultationUpdate

from engine.persistence import InMemoryConsultationStore, VaultConsultationStore


def _record(user_id="user-1", question="What should I focus on?", number=47):
    return ConsultationRecord(
        user_id=user_id,
        question=question,
        hexagram_number=number,
        hexagram_name="Oppression (Exhaustion)",
        lines=[6, 7, 8, 9, 7, 8],
        changing_lines=[1, 4],
        interpretation=AIInterpretation(interpretation="Ancient wisdom suggests patience."),
    )


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

async def test_save_assigns_id_and_timestamps():
    store = InMemoryConsultationStore()
    stored = await store.save(_record())
    assert stored.id
    assert stored.created_at.tzinfo is not None
    assert stored.status == "active"
    assert await store.fetch_by_id(stored.id) == stored


async def test_fetch_missing_returns_none():
    store = InMemoryConsultationStore()
    assert await store.fetch_by_id("nope") is None
    assert await store.update("nope", ConsultationUpdate(notes="x")) is None
    assert await store.archive("nope") is None


async def test_fetch_by_user_newest_first_and_limited():
    store = InMemoryConsultationStore()
    first = await store.save(_record(question="first"))
    second = await store.save(_record(question="second"))
    await store.save(_record(user_id="someone-else"))
    rows = await store.fetch_by_user("user-1")
    assert [r.id for r in rows] == [second.id, first.id]
    assert len(await store.fetch_by_user("user-1", limit=1)) == 1


async def test_update_and_archive():
    store = InMemoryConsultationStore()
    stored = await store.save(_record())
    updated = await store.update(stored.id, ConsultationUpdate(notes="Revisit in spring", tags=["career"]))
    assert updated.notes == "Revisit in spring"
    assert updated.tags == ["career"]
    assert updated.status == "active"

    archived = await store.archive(stored.id)
    assert archived.status == "archived"
    assert archived.notes == "Revisit in spring"
    assert await store.fetch_by_id(stored.id) is not None


async def test_search_matches_question_text():
    store = InMemoryConsultationStore()
    await store.save(_record(question="How is my Career going?"))
    await store.save(_record(question="Should I move house?"))
    rows = await store.search("user-1", "career")
    assert [r.question for r in rows] == ["How is my Career going?"]


async def test_stats():
    store = InMemoryConsultationStore()
    assert (await store.stats("user-1")).total_consultations == 0
    await store.save(_record(number=47))
    await store.save(_record(number=47))
    await store.save(_record(number=11))
    stats = await store.stats("user-1")
    assert stats.total_consultations == 3
    assert stats.unique_hexagrams == 2
    assert stats.first_consultation <= stats.last_consultation


# ---------------------------------------------------------------------------
# REST store
# ---------------------------------------------------------------------------

def _stored_payload(body: dict, consultation_id: str = "c-1") -> dict:
    now = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc).isoformat()
    return {**body, "id": consultation_id, "created_at": now, "updated_at": now}


def _vault(handler) -> VaultConsultationStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return VaultConsultationStore("http://vault.test/", client=client)


async def test_vault_save_posts_record():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        body = json.loads(request.content)
        return httpx.Response(201, json={"success": True, "data": {"consultation": _stored_payload(body)}})

    store = _vault(handler)
    stored = await store.save(_record())
    await store.aclose()

    assert seen == {"method": "POST", "url": "http://vault.test/consultations"}
    assert stored.id == "c-1"
    assert stored.changing_lines == [1, 4]


async def test_vault_fetch_404_returns_none():
    store = _vault(lambda request: httpx.Response(404, json={"success": False, "error": "not found"}))
    assert await store.fetch_by_id("missing") is None


async def test_vault_fetch_by_user_sends_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        row = _stored_payload(_record().model_dump(mode="json"))
        return httpx.Response(200, json={"success": True, "data": {"consultations": [row]}})

    rows = await _vault(handler).fetch_by_user("user-1", limit=5)
    assert seen["params"] == {"userId": "user-1", "limit": "5"}
    assert len(rows) == 1


async def test_vault_archive_patches_status():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        row = _stored_payload({**_record().model_dump(mode="json"), **seen["body"]})
        return httpx.Response(200, json={"success": True, "data": row})

    archived = await _vault(handler).archive("c-1")
    assert seen["method"] == "PATCH"
    assert seen["body"] == {"status": "archived"}
    assert archived.status == "archived"


async def test_vault_server_error_raises():
    store = _vault(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(PersistenceError, match="500"):
        await store.save(_record())


async def test_vault_envelope_failure_raises():
    store = _vault(lambda request: httpx.Response(200, json={"success": False, "error": "quota exceeded"}))
    with pytest.raises(PersistenceError, match="quota exceeded"):
        await store.save(_record())


async def test_vault_unreachable_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PersistenceError, match="unreachable"):
        await _vault(handler).save(_record())


async def test_vault_stats():
    payload = {"total_consultations": 4, "unique_hexagrams": 3}
    store = _vault(lambda request: httpx.Response(200, json={"success": True, "data": payload}))
    stats = await store.stats("user-1")
    assert stats.total_consultations == 4
    assert stats.unique_hexagrams == 3
