"""
Unit tests for the application factory and the build-step command.
"""

import json

import pytest

from src.config.settings import ProfileSettings
from src.core.blobstore.errors import InvalidInputError
from src.main import create_uploader, main


# ---------------------------------------------------------------------------
# Application wiring and command
# ---------------------------------------------------------------------------

class TestCreateUploader:
    """Tests for the application factory."""

    def test_uploads_with_configured_profile(self, settings, registry, artifact, tmp_path):
        settings.blobstore_profiles = [ProfileSettings(profile_name="local", provider_name="filesystem")]

        result = create_uploader(settings, registry).upload("local", "c", "d", artifact)

        assert result.key == "d/a.txt"
        assert (tmp_path / "blobstore" / "c" / "d" / "a.txt").read_bytes() == b"artifact contents"

    def test_uses_credentials_file(self, settings, registry, artifact, tmp_path):
        credentials_file = tmp_path / "credentials.json"
        credentials_file.write_text(json.dumps({"credentials": [
            {"type": "username_password", "id": "k", "username": "u", "password": "p"},
        ]}), encoding="utf-8")
        settings.credentials_file = str(credentials_file)
        settings.blobstore_profiles = [
            ProfileSettings(profile_name="mem", provider_name="transient", credential_id="k"),
        ]

        result = create_uploader(settings, registry).upload("mem", "c", "", artifact)

        assert result.key == "a.txt"

    def test_duplicate_profiles_raise_invalid_input(self, settings, registry):
        settings.blobstore_profiles = [
            ProfileSettings(profile_name="local", provider_name="filesystem"),
            ProfileSettings(profile_name="local", provider_name="transient"),
        ]

        with pytest.raises(InvalidInputError, match="Duplicate profile name: local"):
            create_uploader(settings, registry)

    def test_blank_provider_name_raises_invalid_input(self, settings, registry):
        settings.blobstore_profiles = [ProfileSettings(profile_name="local", provider_name="")]

        with pytest.raises(InvalidInputError, match="Invalid profile configuration"):
            create_uploader(settings, registry)


class TestMainCommand:
    """Tests for the build-step command."""

    @pytest.fixture
    def environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BLOBSTORE_PROFILES", json.dumps([
            {"profile_name": "local", "provider_name": "filesystem"},
        ]))
        monkeypatch.setenv("FILESYSTEM_BASEDIR", str(tmp_path / "store"))
        return tmp_path / "store"

    def test_successful_upload(self, environment, artifact, capsys):
        exit_code = main(["local", "c", str(artifact), "--path", "builds/1"])

        assert exit_code == 0
        assert (environment / "c" / "builds" / "1" / "a.txt").exists()
        assert "Published builds/1/a.txt" in capsys.readouterr().out

    def test_directory_source_fails(self, environment, tmp_path, capsys):
        exit_code = main(["local", "c", str(tmp_path)])

        assert exit_code == 1
        assert "is a directory" in capsys.readouterr().err

    def test_unknown_profile_fails(self, environment, artifact):
        assert main(["missing", "c", str(artifact)]) == 1

    def test_duplicate_profiles_fail_with_exit_code(self, monkeypatch, tmp_path, artifact, capsys):
        monkeypatch.setenv("BLOBSTORE_PROFILES", json.dumps([
            {"profile_name": "local", "provider_name": "filesystem"},
            {"profile_name": "local", "provider_name": "transient"},
        ]))
        monkeypatch.setenv("FILESYSTEM_BASEDIR", str(tmp_path / "store"))

        exit_code = main(["local", "c", str(artifact)])

        assert exit_code == 1
        assert "Duplicate profile name: local" in capsys.readouterr().err
        assert not (tmp_path / "store").exists()

    def test_blank_provider_name_fails_with_exit_code(self, monkeypatch, artifact, capsys):
        monkeypatch.setenv("BLOBSTORE_PROFILES", json.dumps([
            {"profile_name": "local", "provider_name": " "},
        ]))

        assert main(["local", "c", str(artifact)]) == 1
        assert "Provider name cannot be empty" in capsys.readouterr().err
