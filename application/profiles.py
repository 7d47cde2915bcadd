from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from domain.models import Profile
from domain.repositories import IdentityRepository, ProfileRepository
from domain.settlement import participant_label

DEFAULT_CACHE_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class ResolvedProfile:
    """What the ledger needs to know about a player's profile."""

    handle: Optional[str]
    public_id: Optional[str]


class ProfileCache:
    """
    Small TTL cache in front of profile lookups.

    Entries expire `ttl` seconds after they were stored. Callers that change
    a profile must call `invalidate` so stale labels are not served.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[ResolvedProfile, float]] = {}
        self._lock = Lock()

    def get(self, profile_id: str) -> Optional[ResolvedProfile]:
        with self._lock:
            entry = self._entries.get(profile_id)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at > self._ttl:
                del self._entries[profile_id]
                return None
            return value

    def set(self, profile_id: str, value: ResolvedProfile) -> None:
        with self._lock:
            self._entries[profile_id] = (value, self._clock())

    def invalidate(self, profile_id: str) -> None:
        with self._lock:
            self._entries.pop(profile_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class ProfileResolver:
    """Resolves participant IDs to display handles, through an optional cache."""

    def __init__(self, profiles: ProfileRepository, cache: Optional[ProfileCache] = None) -> None:
        self._profiles = profiles
        self._cache = cache

    def resolve(self, participant_id: str) -> ResolvedProfile:
        if self._cache is not None:
            cached = self._cache.get(participant_id)
            if cached is not None:
                return cached

        profile = self._profiles.get_profile(participant_id)
        if profile is None:
            resolved = ResolvedProfile(handle=None, public_id=None)
        else:
            resolved = ResolvedProfile(
                handle=profile.display_name or None,
                public_id=profile.venmo_handle or None,
            )

        if self._cache is not None:
            self._cache.set(participant_id, resolved)
        return resolved

    def label(self, participant_id: str) -> str:
        """Settlement label: @public_id, then handle, then a short id."""

        resolved = self.resolve(participant_id)
        return participant_label(participant_id, resolved.handle, resolved.public_id)

    def display_name(self, participant_id: str) -> str:
        """Label for lists: the handle, falling back to a truncated id."""

        resolved = self.resolve(participant_id)
        if resolved.public_id:
            return f"@{resolved.public_id}"
        return resolved.handle or participant_id[:8]

    def invalidate(self, participant_id: str) -> None:
        if self._cache is not None:
            self._cache.invalidate(participant_id)


def ensure_profile(
    profiles: ProfileRepository,
    profile_id: str,
    display_name: Optional[str] = None,
) -> Profile:
    """Return the profile, creating an empty one on first sight."""

    existing = profiles.get_profile(profile_id)
    if existing is not None:
        return existing

    profile = Profile(id=profile_id, display_name=display_name)
    profiles.add_profile(profile)
    return profiles.get_profile(profile_id) or profile


def update_profile(
    profiles: ProfileRepository,
    resolver: ProfileResolver,
    profile_id: str,
    display_name: Optional[str] = None,
    venmo_handle: Optional[str] = None,
    profile_public: Optional[bool] = None,
) -> Profile:
    """Change display fields of a profile. Lifetime net profit is untouched."""

    profile = ensure_profile(profiles, profile_id)
    if display_name is not None:
        profile.display_name = display_name.strip() or None
    if venmo_handle is not None:
        profile.venmo_handle = venmo_handle.strip().lstrip("@") or None
    if profile_public is not None:
        profile.profile_public = profile_public
    profiles.update_profile(profile)
    resolver.invalidate(profile_id)
    return profile


def profile_for_external(
    identities: IdentityRepository,
    profiles: ProfileRepository,
    provider: str,
    provider_user_id: str,
    display_name: Optional[str] = None,
) -> Profile:
    """
    Map a chat-platform account to a profile, creating both the profile and
    the mapping the first time the account is seen.

    A known account keeps its profile's display name; it is only filled in
    when the profile has none yet.
    """

    profile_id = identities.find_profile_id(provider, provider_user_id)
    if profile_id is None:
        profile_id = uuid.uuid4().hex
        identities.set_external_identity(provider, provider_user_id, profile_id)

    profile = ensure_profile(profiles, profile_id, display_name)
    if profile.display_name is None and display_name:
        profile.display_name = display_name
        profiles.update_profile(profile)
    return profile
