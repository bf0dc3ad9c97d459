"""Lookup of configured profiles by name."""

import logging
from typing import Iterable, Iterator

from .errors import InvalidInputError, ProfileNotFoundError
from .models import Profile

logger = logging.getLogger(__name__)


class ProfileCatalog:
    """
    The set of configured blobstore profiles.

    Names are unique. The catalog is built once from configuration and
    never mutated afterwards, so it is safe to share between threads.
    """

    def __init__(self, profiles: Iterable[Profile] = ()) -> None:
        self._profiles: dict[str, Profile] = {}
        for profile in profiles:
            if profile.profile_name in self._profiles:
                raise InvalidInputError(f"Duplicate profile name: {profile.profile_name}")
            self._profiles[profile.profile_name] = profile

        logger.debug(
            "Loaded blobstore profiles",
            extra={"profiles": list(self._profiles)}
        )

    def get(self, profile_name: str) -> Profile:
        try:
            return self._profiles[profile_name]
        except KeyError:
            raise ProfileNotFoundError(f"Unknown blobstore profile: {profile_name}") from None

    def __contains__(self, profile_name: object) -> bool:
        return profile_name in self._profiles

    def __iter__(self) -> Iterator[Profile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)
