"""
Publisher configuration.

Read from the environment (or a .env file in the working directory) when
the build step starts. Malformed values fail at load time; problems that
only show up across fields are reported by validate_required_fields().

Profiles are given as JSON, e.g.:

    BLOBSTORE_PROFILES='[{"profile_name": "releases", "provider_name": "aws-s3",
                          "credential_id": "aws-release-key"}]'
"""

from collections import Counter
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.blobstore.models import Profile


class ProfileSettings(BaseModel):
    """One configured blobstore profile."""
    profile_name: str
    provider_name: str
    credential_id: str = ""

    def to_profile(self) -> Profile:
        return Profile(
            profile_name=self.profile_name,
            provider_name=self.provider_name,
            credential_id=self.credential_id,
        )


class Settings(BaseSettings):
    """
    Settings for the publisher and its storage providers.

    Field names map to upper-case environment variables (S3_REGION, ...).
    """

    # Profiles
    blobstore_profiles: list[ProfileSettings] = Field(
        default_factory=list,
        description="JSON list of profiles binding a provider name to a credential id."
    )

    # Credential store
    credentials_file: Optional[str] = Field(
        default=None,
        description="Path to the JSON credential store. Without it no credentials are available."
    )

    # Provider configuration
    filesystem_basedir: str = Field(
        default="./blobstore",
        description="Base directory for the filesystem provider. Containers are subdirectories."
    )
    s3_region: Optional[str] = Field(
        default=None,
        description="Region for S3 providers. Buckets created without a location go here."
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Endpoint of an S3-compatible service (MinIO, R2). Required by the 's3' provider."
    )
    s3_connect_timeout: Optional[float] = Field(
        default=None,
        description="Connect timeout in seconds for S3 providers. Transport default when unset."
    )
    s3_read_timeout: Optional[float] = Field(
        default=None,
        description="Read timeout in seconds for S3 providers. Transport default when unset."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def profiles(self) -> list[Profile]:
        return [profile.to_profile() for profile in self.blobstore_profiles]

    def validate_required_fields(self) -> list[str]:
        """
        Check the configuration for problems Pydantic can't see.

        Returns a list of human-readable problems; empty means usable.
        """
        problems = []

        if not self.blobstore_profiles:
            problems.append("BLOBSTORE_PROFILES is empty")

        counts = Counter(profile.profile_name for profile in self.blobstore_profiles)
        for name, count in counts.items():
            if count > 1:
                problems.append(f"Duplicate profile name: {name}")

        if any(p.provider_name == "s3" for p in self.blobstore_profiles) and not self.s3_endpoint_url:
            problems.append("S3_ENDPOINT_URL is required for profiles using the 's3' provider")

        if any(p.credential_id for p in self.blobstore_profiles):
            if not self.credentials_file:
                problems.append("CREDENTIALS_FILE is required when profiles reference credentials")
            elif not Path(self.credentials_file).is_file():
                problems.append(f"CREDENTIALS_FILE does not exist: {self.credentials_file}")

        return problems


@lru_cache()
def get_settings() -> Settings:
    """
    Load settings once and share them for the rest of the process.

    Tests that change the environment call get_settings.cache_clear().
    """
    return Settings()
