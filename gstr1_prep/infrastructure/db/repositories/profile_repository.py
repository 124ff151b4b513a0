# gstr1_prep/infrastructure/db/repositories/profile_repository.py

from __future__ import annotations

from gstr1_prep.domain.models.filing import GstProfile


class InMemoryProfileStore:
    """Per-user GST profiles; at most one active profile per user."""

    def __init__(self) -> None:
        self._profiles: dict[str, list[GstProfile]] = {}

    async def add_profile(self, user_id: str, profile: GstProfile) -> GstProfile:
        """Store *profile*; an active profile deactivates the user's others."""
        profiles = self._profiles.setdefault(user_id, [])
        if profile.is_active:
            profiles[:] = [p.model_copy(update={"is_active": False}) for p in profiles]
        profiles.append(profile)
        return profile

    async def list_profiles(self, user_id: str) -> list[GstProfile]:
        return list(self._profiles.get(user_id, []))

    async def get_active_profile(self, user_id: str) -> GstProfile | None:
        for profile in self._profiles.get(user_id, []):
            if profile.is_active:
                return profile
        return None
