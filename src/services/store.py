"""Persistence adapters for targets, verification ledger rows and scan logs.

The scanner only touches five tables:

+------------------------------+----------------------------------------+
| Table                        | Access                                 |
+------------------------------+----------------------------------------+
| politicians                  | read by id, partial update             |
| political_parties            | read by id, partial update             |
| politician_ai_verification   | upsert on ``politician_id``            |
| party_ai_verification        | upsert on ``party_id``                 |
| politica_ai_logs             | insert, then update by id              |
+------------------------------+----------------------------------------+

Two backends implement :class:`VerificationStore`: an in-process dict
store for development and tests, and a Supabase (PostgREST) store over
``httpx``.  There is no optimistic locking: concurrent scans of the same
target are last-write-wins.
"""

from __future__ import annotations

import uuid
from copy import deepcopy
from typing import Any, Protocol, runtime_checkable

import httpx
import orjson
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.models.verification import TargetType

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Table layout
# ---------------------------------------------------------------------------

TARGET_TABLES: dict[TargetType, str] = {
    TargetType.POLITICIAN: "politicians",
    TargetType.POLITICAL_PARTY: "political_parties",
}

VERIFICATION_TABLES: dict[TargetType, tuple[str, str]] = {
    TargetType.POLITICIAN: ("politician_ai_verification", "politician_id"),
    TargetType.POLITICAL_PARTY: ("party_ai_verification", "party_id"),
}

LOG_TABLE = "politica_ai_logs"


# ---------------------------------------------------------------------------
# Store protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class VerificationStore(Protocol):
    """Async persistence interface used by the scanner."""

    async def get_target(self, target_type: TargetType, target_id: str) -> dict[str, Any] | None: ...

    async def update_target(self, target_type: TargetType, target_id: str, changes: dict[str, Any]) -> None: ...

    async def upsert_verification(self, target_type: TargetType, target_id: str, row: dict[str, Any]) -> None: ...

    async def create_log(self, row: dict[str, Any]) -> str: ...

    async def update_log(self, log_id: str, changes: dict[str, Any]) -> None: ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryVerificationStore:
    """Dict-backed store.

    Every ``update_target`` call is also appended to :attr:`target_updates`
    so callers can assert on exactly what was written.
    """

    __slots__ = ("logs", "target_updates", "targets", "verifications")

    def __init__(self, targets: dict[TargetType, dict[str, dict[str, Any]]] | None = None) -> None:
        self.targets: dict[TargetType, dict[str, dict[str, Any]]] = {
            target_type: {} for target_type in TargetType
        }
        for target_type, rows in (targets or {}).items():
            self.targets[TargetType(target_type)].update(deepcopy(rows))
        self.verifications: dict[TargetType, dict[str, dict[str, Any]]] = {
            target_type: {} for target_type in TargetType
        }
        self.logs: dict[str, dict[str, Any]] = {}
        self.target_updates: list[tuple[TargetType, str, dict[str, Any]]] = []

    def add_target(self, target_type: TargetType, row: dict[str, Any]) -> None:
        self.targets[target_type][str(row["id"])] = deepcopy(row)

    async def get_target(self, target_type: TargetType, target_id: str) -> dict[str, Any] | None:
        row = self.targets[target_type].get(target_id)
        return deepcopy(row) if row is not None else None

    async def update_target(self, target_type: TargetType, target_id: str, changes: dict[str, Any]) -> None:
        row = self.targets[target_type].get(target_id)
        if row is None:
            raise KeyError(f"{TARGET_TABLES[target_type]} row {target_id!r} does not exist")
        row.update(changes)
        self.target_updates.append((target_type, target_id, dict(changes)))

    async def upsert_verification(self, target_type: TargetType, target_id: str, row: dict[str, Any]) -> None:
        _, key_column = VERIFICATION_TABLES[target_type]
        existing = self.verifications[target_type].get(target_id, {})
        self.verifications[target_type][target_id] = {**existing, **row, key_column: target_id}

    async def create_log(self, row: dict[str, Any]) -> str:
        log_id = str(row.get("id") or uuid.uuid4())
        self.logs[log_id] = {**row, "id": log_id}
        return log_id

    async def update_log(self, log_id: str, changes: dict[str, Any]) -> None:
        if log_id not in self.logs:
            raise KeyError(f"{LOG_TABLE} row {log_id!r} does not exist")
        self.logs[log_id].update(changes)


# ---------------------------------------------------------------------------
# Supabase (PostgREST) backend
# ---------------------------------------------------------------------------

_RETRYABLE = (httpx.TransportError,)


class SupabaseVerificationStore:
    """Store backed by a Supabase project's PostgREST endpoint.

    Parameters
    ----------
    url:
        Project URL, e.g. ``https://abc.supabase.co``.
    service_role_key:
        Service-role key; sent both as ``apikey`` and bearer token.
    client:
        Optional pre-built ``httpx.AsyncClient`` (used by tests).
    retry_attempts:
        Attempts per request on transport errors.  HTTP error statuses
        are not retried.
    """

    def __init__(
        self,
        url: str,
        service_role_key: str,
        client: httpx.AsyncClient | None = None,
        retry_attempts: int = 3,
        timeout: float = 30.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._base_url = f"{url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
        }
        self._retry_attempts = retry_attempts

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # HTTP helper
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        body: object = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        content = orjson.dumps(body) if body is not None else None

        @retry(
            retry=retry_if_exception_type(_RETRYABLE),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            reraise=True,
        )
        async def _send() -> httpx.Response:
            return await self._client.request(
                method,
                f"{self._base_url}/{table}",
                params=params,
                content=content,
                headers=headers,
            )

        response = await _send()
        if response.is_error:
            logger.error(
                "store.request_failed",
                method=method,
                table=table,
                status_code=response.status_code,
                body=response.text[:500],
            )
        response.raise_for_status()
        return response

    # ------------------------------------------------------------------
    # VerificationStore interface
    # ------------------------------------------------------------------

    async def get_target(self, target_type: TargetType, target_id: str) -> dict[str, Any] | None:
        response = await self._request(
            "GET",
            TARGET_TABLES[target_type],
            params={"id": f"eq.{target_id}", "select": "*", "limit": "1"},
        )
        rows = response.json()
        return rows[0] if rows else None

    async def update_target(self, target_type: TargetType, target_id: str, changes: dict[str, Any]) -> None:
        await self._request(
            "PATCH",
            TARGET_TABLES[target_type],
            params={"id": f"eq.{target_id}"},
            body=changes,
            prefer="return=minimal",
        )

    async def upsert_verification(self, target_type: TargetType, target_id: str, row: dict[str, Any]) -> None:
        table, key_column = VERIFICATION_TABLES[target_type]
        await self._request(
            "POST",
            table,
            params={"on_conflict": key_column},
            body={**row, key_column: target_id},
            prefer="resolution=merge-duplicates,return=minimal",
        )

    async def create_log(self, row: dict[str, Any]) -> str:
        response = await self._request(
            "POST",
            LOG_TABLE,
            body=row,
            prefer="return=representation",
        )
        created = response.json()
        return str(created[0]["id"])

    async def update_log(self, log_id: str, changes: dict[str, Any]) -> None:
        await self._request(
            "PATCH",
            LOG_TABLE,
            params={"id": f"eq.{log_id}"},
            body=changes,
            prefer="return=minimal",
        )
