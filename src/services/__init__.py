"""Service layer -- persistence adapters and the verification pipeline."""

from __future__ import annotations

from src.services.store import (
    InMemoryVerificationStore,
    SupabaseVerificationStore,
    VerificationStore,
)

__all__ = [
    "InMemoryVerificationStore",
    "SupabaseVerificationStore",
    "VerificationStore",
]
