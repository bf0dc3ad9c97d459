"""
Unit tests for settings parsing and validation.
"""

import json

from src.config.settings import ProfileSettings, Settings, get_settings
from src.core.blobstore.models import Profile


class TestSettings:
    """Tests for settings parsing and validation."""

    def test_profiles_from_environment(self, monkeypatch):
        monkeypatch.setenv("BLOBSTORE_PROFILES", json.dumps([
            {"profile_name": "releases", "provider_name": "aws-s3", "credential_id": "aws-key"},
            {"profile_name": "local", "provider_name": "filesystem"},
        ]))

        settings = Settings(_env_file=None)

        assert settings.profiles == [
            Profile("releases", "aws-s3", "aws-key"),
            Profile("local", "filesystem", ""),
        ]

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_empty_profiles_reported(self):
        assert "BLOBSTORE_PROFILES is empty" in Settings(_env_file=None).validate_required_fields()

    def test_duplicate_profiles_reported(self):
        settings = Settings(
            _env_file=None,
            blobstore_profiles=[
                ProfileSettings(profile_name="p", provider_name="transient"),
                ProfileSettings(profile_name="p", provider_name="filesystem"),
            ],
        )

        assert "Duplicate profile name: p" in settings.validate_required_fields()

    def test_generic_s3_without_endpoint_reported(self):
        settings = Settings(
            _env_file=None,
            blobstore_profiles=[ProfileSettings(profile_name="minio", provider_name="s3")],
        )

        problems = settings.validate_required_fields()

        assert any("S3_ENDPOINT_URL" in problem for problem in problems)

    def test_credential_reference_without_store_reported(self):
        settings = Settings(
            _env_file=None,
            blobstore_profiles=[
                ProfileSettings(profile_name="p", provider_name="aws-s3", credential_id="k"),
            ],
        )

        problems = settings.validate_required_fields()

        assert any("CREDENTIALS_FILE" in problem for problem in problems)

    def test_valid_configuration(self, tmp_path):
        credentials_file = tmp_path / "credentials.json"
        credentials_file.write_text('{"credentials": []}', encoding="utf-8")
        settings = Settings(
            _env_file=None,
            credentials_file=str(credentials_file),
            blobstore_profiles=[
                ProfileSettings(profile_name="p", provider_name="aws-s3", credential_id="k"),
            ],
        )

        assert settings.validate_required_fields() == []

