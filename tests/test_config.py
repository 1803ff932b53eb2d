"""Tests for the settings loader."""

import pytest

from config import load_config, SettingsError, DEFAULTS

def write_settings(tmp_path, body: str):
    (tmp_path / "settings.conf").write_text(body)
    return str(tmp_path)

def test_defaults_when_file_missing(tmp_path):
    """Test that a missing settings.conf falls back to the defaults."""
    settings = load_config(str(tmp_path))

    assert settings["catalog_url"] == DEFAULTS["catalog_url"]
    assert settings["approved_notification_hours"] == 24
    assert settings["guarded_approval"] is False
    assert settings["api_port"] == 8000

def test_values_are_converted(tmp_path):
    path = write_settings(tmp_path, "\n".join([
        "[DEFAULT]",
        "supabase_url = https://project.supabase.co/",
        "guarded_approval = yes",
        "catalog_timeout = 5",
    ]))

    settings = load_config(path)

    assert settings["supabase_url"] == "https://project.supabase.co"
    assert settings["guarded_approval"] is True
    assert settings["catalog_timeout"] == 5

@pytest.mark.parametrize("line", [
    "api_port = eighty",
    "guarded_approval = maybe",
    "catalog_url = ftp://catalog",
    "whatsapp_country_code = +55",
])
def test_invalid_values(tmp_path, line):
    path = write_settings(tmp_path, f"[DEFAULT]\n{line}\n")
    with pytest.raises(SettingsError):
        load_config(path)

def test_missing_default_section(tmp_path):
    path = write_settings(tmp_path, "[other]\nkey = value\n")
    with pytest.raises(SettingsError):
        load_config(path)
