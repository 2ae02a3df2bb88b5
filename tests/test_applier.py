"""Tests for the UpdateApplier."""

from __future__ import annotations

import pytest

from src.models.verification import FieldVerification, ScanResult, TargetType
from src.services.store import InMemoryVerificationStore
from src.services.verification.applier import UpdateApplier
from src.services.verification.errors import PersistenceError


def _verification(**overrides) -> FieldVerification:
    values = {
        "field": "role_title",
        "current_value": "Minister of Health",
        "found_value": "Former Minister of Health",
        "confidence": 0.8,
        "needs_update": True,
    }
    values.update(overrides)
    return FieldVerification(**values)


def _result(*verifications: FieldVerification) -> ScanResult:
    return ScanResult(
        target_id="p1",
        target_type=TargetType.POLITICIAN,
        verifications=list(verifications),
    )


@pytest.fixture
def store() -> InMemoryVerificationStore:
    store = InMemoryVerificationStore()
    store.add_target(
        TargetType.POLITICIAN,
        {"id": "p1", "name": "Jean Nkuete", "role_title": "Minister of Health", "term_status": "Active"},
    )
    return store


class TestIsApplicable:
    def test_eligible(self) -> None:
        assert UpdateApplier(InMemoryVerificationStore()).is_applicable(_verification())

    @pytest.mark.parametrize(
        "overrides",
        [
            {"needs_update": False},
            {"confidence": 0.49},
            {"found_value": None},
            {"found_value": "   "},
            {"found_value": "Minister of Health"},
        ],
    )
    def test_ineligible(self, overrides: dict) -> None:
        assert not UpdateApplier(InMemoryVerificationStore()).is_applicable(_verification(**overrides))

    def test_threshold_is_inclusive(self) -> None:
        assert UpdateApplier(InMemoryVerificationStore()).is_applicable(_verification(confidence=0.5))


class TestApply:
    async def test_single_partial_update(self, store: InMemoryVerificationStore) -> None:
        result = _result(
            _verification(),
            _verification(field="term_status", current_value="Active", found_value="Retired", confidence=0.67),
            _verification(field="party", current_value="RDPC", found_value="RDPC", confidence=0.2),
        )
        changes = await UpdateApplier(store).apply(result)

        assert [c.field for c in changes] == ["role_title", "term_status"]
        assert store.target_updates == [
            (
                TargetType.POLITICIAN,
                "p1",
                {"role_title": "Former Minister of Health", "term_status": "Retired"},
            )
        ]
        assert store.targets[TargetType.POLITICIAN]["p1"]["name"] == "Jean Nkuete"

    async def test_nothing_written_when_no_change_qualifies(self, store: InMemoryVerificationStore) -> None:
        changes = await UpdateApplier(store).apply(_result(_verification(confidence=0.3)))
        assert changes == []
        assert store.target_updates == []

    async def test_write_failure_raises(self) -> None:
        # No target row, so the in-memory update fails.
        with pytest.raises(PersistenceError) as exc_info:
            await UpdateApplier(InMemoryVerificationStore()).apply(_result(_verification()))
        assert exc_info.value.code == "PERSISTENCE_FAILED"
        assert exc_info.value.details == {"fields": ["role_title"]}

    def test_select_records_old_and_new_values(self) -> None:
        changes = UpdateApplier(InMemoryVerificationStore()).select(_result(_verification()))
        assert changes[0].old_value == "Minister of Health"
        assert changes[0].new_value == "Former Minister of Health"
        assert changes[0].confidence == 0.8
