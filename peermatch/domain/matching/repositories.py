"""
Matching domain repositories providing profile access interfaces and implementations.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from .value_objects import UserProfile


class ProfileStore(ABC):
    """
    Abstract repository interface for reading user profiles.

    Profiles are owned by an external service; the matching core only
    reads normalized snapshots through this contract.
    """

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Retrieve a profile by user ID, or None when it does not exist."""
        pass


class InMemoryProfileStore(ProfileStore):
    """
    Dictionary-backed profile store for tests, demos and local runs.
    """

    def __init__(self, profiles: Optional[Iterable[UserProfile]] = None):
        self._profiles: Dict[str, UserProfile] = {}
        for profile in profiles or ():
            self.save(profile)

    def save(self, profile: UserProfile) -> None:
        """Insert or replace a profile."""
        self._profiles[profile.user_id] = profile

    def delete(self, user_id: str) -> bool:
        """Remove a profile, returning whether it existed."""
        return self._profiles.pop(user_id, None) is not None

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)
