"""
persistence.py -- Consultation store collaborators.

ConsultationStore is the narrow interface the orchestrator writes through.
InMemoryConsultationStore keeps rows in a dict (development and tests).
VaultConsultationStore talks to a REST store over httpx; every response
uses the {"success": bool, "data": ..., "error": ...} envelope.
Consultations are never deleted; archive() sets status to "archived".
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel, ValidationError

from iching.errors import PersistenceError
from iching.models import ConsultationRecord, ConsultationUpdate, StoredConsultation

from engine import config

logger = logging.getLogger(__name__)


class ConsultationStats(BaseModel):
    total_consultations: int = 0
    unique_hexagrams: int = 0
    first_consultation: Optional[datetime] = None
    last_consultation: Optional[datetime] = None


class ConsultationStore(Protocol):
    async def save(self, record: ConsultationRecord) -> StoredConsultation:
        ...

    async def fetch_by_id(self, consultation_id: str) -> Optional[StoredConsultation]:
        ...

    async def fetch_by_user(self, user_id: str, limit: int = 20) -> list[StoredConsultation]:
        ...

    async def update(
        self, consultation_id: str, changes: ConsultationUpdate
    ) -> Optional[StoredConsultation]:
        ...

    async def archive(self, consultation_id: str) -> Optional[StoredConsultation]:
        ...

    async def search(self, user_id: str, term: str, limit: int = 10) -> list[StoredConsultation]:
        ...

    async def stats(self, user_id: str) -> ConsultationStats:
        ...


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class InMemoryConsultationStore:
    """Dict-backed store. Rows live for the lifetime of the process."""

    def __init__(self) -> None:
        self._rows: dict[str, StoredConsultation] = {}

    async def save(self, record: ConsultationRecord) -> StoredConsultation:
        now = datetime.now(timezone.utc)
        stored = StoredConsultation(
            **record.model_dump(), id=str(uuid.uuid4()), created_at=now, updated_at=now,
        )
        self._rows[stored.id] = stored
        return stored

    async def fetch_by_id(self, consultation_id: str) -> Optional[StoredConsultation]:
        return self._rows.get(consultation_id)

    async def fetch_by_user(self, user_id: str, limit: int = 20) -> list[StoredConsultation]:
        rows = [r for r in reversed(self._rows.values()) if r.user_id == user_id]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[:limit]

    async def update(
        self, consultation_id: str, changes: ConsultationUpdate
    ) -> Optional[StoredConsultation]:
        current = self._rows.get(consultation_id)
        if current is None:
            return None
        updated = current.model_copy(
            update={**changes.model_dump(exclude_none=True), "updated_at": datetime.now(timezone.utc)}
        )
        self._rows[consultation_id] = updated
        return updated

    async def archive(self, consultation_id: str) -> Optional[StoredConsultation]:
        return await self.update(consultation_id, ConsultationUpdate(status="archived"))

    async def search(self, user_id: str, term: str, limit: int = 10) -> list[StoredConsultation]:
        needle = term.lower()
        rows = await self.fetch_by_user(user_id, limit=len(self._rows))
        return [r for r in rows if needle in r.question.lower()][:limit]

    async def stats(self, user_id: str) -> ConsultationStats:
        rows = [r for r in self._rows.values() if r.user_id == user_id]
        if not rows:
            return ConsultationStats()
        created = sorted(r.created_at for r in rows)
        return ConsultationStats(
            total_consultations=len(rows),
            unique_hexagrams=len({r.hexagram_number for r in rows}),
            first_consultation=created[0],
            last_consultation=created[-1],
        )


# ---------------------------------------------------------------------------
# REST store
# ---------------------------------------------------------------------------

class VaultConsultationStore:
    """ConsultationStore backed by a REST service at base_url."""

    def __init__(
        self,
        base_url: str = config.STORE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = config.STORE_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Optional[Any]:
        """Send a request and return the envelope's data; None on 404."""
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.request(method, url, **kwargs)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Store returned %d for %s %s", exc.response.status_code, method, path)
            raise PersistenceError(
                f"Store returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Failed to reach store at %s: %s", url, exc)
            raise PersistenceError(f"Store unreachable: {exc}") from exc
        except ValueError as exc:
            raise PersistenceError(f"Store sent invalid JSON: {exc}") from exc
        if not body.get("success"):
            raise PersistenceError(body.get("error") or "Store reported failure")
        return body.get("data")

    @staticmethod
    def _row(data: Any) -> StoredConsultation:
        try:
            return StoredConsultation.model_validate(data)
        except ValidationError as exc:
            raise PersistenceError(f"Store returned a malformed consultation: {exc}") from exc

    async def save(self, record: ConsultationRecord) -> StoredConsultation:
        data = await self._request("POST", "/consultations", json=record.model_dump(mode="json"))
        if data is None:
            raise PersistenceError("Store has no consultations endpoint")
        stored = self._row(data.get("consultation", data))
        logger.info("Consultation %s saved to store", stored.id)
        return stored

    async def fetch_by_id(self, consultation_id: str) -> Optional[StoredConsultation]:
        data = await self._request("GET", f"/consultations/{consultation_id}")
        if data is None:
            return None
        return self._row(data.get("consultation", data))

    async def fetch_by_user(self, user_id: str, limit: int = 20) -> list[StoredConsultation]:
        data = await self._request(
            "GET", "/consultations", params={"userId": user_id, "limit": str(limit)}
        )
        return [self._row(row) for row in (data or {}).get("consultations", [])]

    async def update(
        self, consultation_id: str, changes: ConsultationUpdate
    ) -> Optional[StoredConsultation]:
        data = await self._request(
            "PATCH",
            f"/consultations/{consultation_id}",
            json=changes.model_dump(mode="json", exclude_none=True),
        )
        if data is None:
            return None
        return self._row(data.get("consultation", data))

    async def archive(self, consultation_id: str) -> Optional[StoredConsultation]:
        return await self.update(consultation_id, ConsultationUpdate(status="archived"))

    async def search(self, user_id: str, term: str, limit: int = 10) -> list[StoredConsultation]:
        data = await self._request(
            "GET",
            "/consultations/search",
            params={"userId": user_id, "q": term, "limit": str(limit)},
        )
        return [self._row(row) for row in (data or {}).get("consultations", [])]

    async def stats(self, user_id: str) -> ConsultationStats:
        data = await self._request("GET", f"/users/{user_id}/consultation-stats")
        if data is None:
            return ConsultationStats()
        return ConsultationStats.model_validate(data)
