"""Tests for the in-memory and Supabase verification stores."""

from __future__ import annotations

import httpx
import orjson
import pytest

from src.models.verification import TargetType
from src.services.store import (
    InMemoryVerificationStore,
    SupabaseVerificationStore,
    VerificationStore,
)


# -----------------------------------------------------------------------
# InMemoryVerificationStore
# -----------------------------------------------------------------------


class TestInMemoryStore:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryVerificationStore(), VerificationStore)

    async def test_seeded_targets(self) -> None:
        store = InMemoryVerificationStore({"politician": {"p1": {"id": "p1", "name": "Paul Biya"}}})
        assert await store.get_target(TargetType.POLITICIAN, "p1") == {"id": "p1", "name": "Paul Biya"}
        assert await store.get_target(TargetType.POLITICAL_PARTY, "p1") is None

    async def test_get_returns_copy(self) -> None:
        store = InMemoryVerificationStore()
        store.add_target(TargetType.POLITICIAN, {"id": "p1", "name": "Paul Biya"})
        row = await store.get_target(TargetType.POLITICIAN, "p1")
        row["name"] = "Changed"
        assert store.targets[TargetType.POLITICIAN]["p1"]["name"] == "Paul Biya"

    async def test_update_missing_target_raises(self) -> None:
        with pytest.raises(KeyError):
            await InMemoryVerificationStore().update_target(TargetType.POLITICIAN, "nope", {"name": "x"})

    async def test_upsert_sets_key_column(self) -> None:
        store = InMemoryVerificationStore()
        await store.upsert_verification(TargetType.POLITICAL_PARTY, "pp1", {"verification_score": 0.5})
        await store.upsert_verification(TargetType.POLITICAL_PARTY, "pp1", {"verification_status": "verified"})
        assert store.verifications[TargetType.POLITICAL_PARTY]["pp1"] == {
            "verification_score": 0.5,
            "verification_status": "verified",
            "party_id": "pp1",
        }

    async def test_log_ids(self) -> None:
        store = InMemoryVerificationStore()
        assert await store.create_log({"id": "log-1", "status": "pending"}) == "log-1"
        generated = await store.create_log({"status": "pending"})
        assert generated and generated != "log-1"
        await store.update_log("log-1", {"status": "completed"})
        assert store.logs["log-1"]["status"] == "completed"
        with pytest.raises(KeyError):
            await store.update_log("missing", {"status": "completed"})


# -----------------------------------------------------------------------
# SupabaseVerificationStore
# -----------------------------------------------------------------------


def _supabase(handler, **kwargs) -> SupabaseVerificationStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseVerificationStore("https://abc.supabase.co/", "service-key", client=client, **kwargs)


class TestSupabaseStore:
    async def test_get_target(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"id": "p1", "name": "Paul Biya"}])

        store = _supabase(handler)
        row = await store.get_target(TargetType.POLITICIAN, "p1")

        assert row == {"id": "p1", "name": "Paul Biya"}
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/politicians"
        assert request.url.params["id"] == "eq.p1"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["authorization"] == "Bearer service-key"

    async def test_get_target_missing(self) -> None:
        store = _supabase(lambda request: httpx.Response(200, json=[]))
        assert await store.get_target(TargetType.POLITICAL_PARTY, "pp9") is None

    async def test_upsert_uses_on_conflict(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201)

        store = _supabase(handler)
        await store.upsert_verification(TargetType.POLITICAL_PARTY, "pp1", {"verification_score": 0.7})

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/party_ai_verification"
        assert request.url.params["on_conflict"] == "party_id"
        assert "resolution=merge-duplicates" in request.headers["prefer"]
        assert orjson.loads(request.content) == {"verification_score": 0.7, "party_id": "pp1"}

    async def test_create_and_update_log(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.method == "POST":
                return httpx.Response(201, json=[{"id": "log-42"}])
            return httpx.Response(204)

        store = _supabase(handler)
        log_id = await store.create_log({"target_id": "p1", "status": "pending"})
        await store.update_log(log_id, {"status": "completed"})

        assert log_id == "log-42"
        assert seen[0].headers["prefer"] == "return=representation"
        assert seen[1].method == "PATCH"
        assert seen[1].url.params["id"] == "eq.log-42"

    async def test_error_status_is_raised_without_retry(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(409, json={"message": "conflict"})

        store = _supabase(handler)
        with pytest.raises(httpx.HTTPStatusError):
            await store.update_target(TargetType.POLITICIAN, "p1", {"name": "x"})
        assert len(calls) == 1

    async def test_transport_errors_are_retried(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) == 1:
                raise httpx.ConnectError("reset", request=request)
            return httpx.Response(204)

        store = _supabase(handler, retry_attempts=2)
        await store.update_log("log-1", {"status": "completed"})
        assert len(calls) == 2

    async def test_retries_exhausted_reraise(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        store = _supabase(handler, retry_attempts=1)
        with pytest.raises(httpx.ConnectError):
            await store.create_log({"status": "pending"})
