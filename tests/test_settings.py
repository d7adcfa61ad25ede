"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from chekprint.printing import CharacterProtocol, LabelProtocol
from chekprint.settings import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        settings = Settings()
        assert settings.protocol == "escpos"
        assert settings.transport == "serial"
        assert settings.printer_port is None
        assert settings.build_profile() == CharacterProtocol()

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CHEKPRINT_PROTOCOL", "tspl")
        monkeypatch.setenv("CHEKPRINT_PAGE_WIDTH", "48")
        monkeypatch.setenv("CHEKPRINT_LABEL__WIDTH_MM", "80")
        monkeypatch.setenv("CHEKPRINT_LABEL__COPIES", "2")
        profile = Settings().build_profile()
        assert isinstance(profile, LabelProtocol)
        assert profile.columns == 48
        assert profile.width_mm == 80
        assert profile.copies == 2

    def test_env_file(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("CHEKPRINT_PRINTER_PORT=/dev/rfcomm0\n")
        assert Settings().printer_port == "/dev/rfcomm0"

    def test_invalid_values_rejected(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CHEKPRINT_PAGE_WIDTH", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_cached(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        assert get_settings() is get_settings()
