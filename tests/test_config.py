"""Tests de la configuration du chargeur."""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest
from pydantic import ValidationError

from loader import config
from loader.config import LoaderSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "LOADER_EHR",
        "LOADER_COMPOSITION_PER_EHR",
        "LOADER_DATABASE_URL",
        "LOADER_WORKERS",
        "LOADER_ZONE_ID",
        "LOADER_LOG_LEVEL",
        "LOADER_LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = LoaderSettings.from_env()

    assert settings.ehr == 100
    assert settings.composition_per_ehr == 200
    assert settings.database_url == "sqlite:///./ehr_loader.db"
    assert settings.workers is None
    ZoneInfo(settings.zone_id)
    assert settings.log_json is False


def test_local_zone_is_iana_id(monkeypatch):
    monkeypatch.setattr(config, "get_localzone_name", lambda: "Europe/Berlin")

    assert LoaderSettings.from_env().zone_id == "Europe/Berlin"


def test_local_zone_abbreviation_falls_back_to_utc(monkeypatch):
    monkeypatch.setattr(config, "get_localzone_name", lambda: "CEST")

    assert LoaderSettings.from_env().zone_id == "UTC"


def test_unreadable_local_zone_falls_back_to_utc(monkeypatch):
    def unreadable():
        raise ZoneInfoNotFoundError("no zone configured")

    monkeypatch.setattr(config, "get_localzone_name", unreadable)

    assert LoaderSettings.from_env().zone_id == "UTC"


def test_invalid_zone_id_rejected(monkeypatch):
    monkeypatch.setenv("LOADER_ZONE_ID", "Mars/Olympus_Mons")

    with pytest.raises(ValidationError):
        LoaderSettings.from_env()


def test_environment(monkeypatch):
    monkeypatch.setenv("LOADER_EHR", "5")
    monkeypatch.setenv("LOADER_COMPOSITION_PER_EHR", "7")
    monkeypatch.setenv("LOADER_WORKERS", "3")
    monkeypatch.setenv("LOADER_ZONE_ID", "Europe/Berlin")
    monkeypatch.setenv("LOADER_LOG_JSON", "1")

    settings = LoaderSettings.from_env()

    assert settings.ehr == 5
    assert settings.composition_per_ehr == 7
    assert settings.workers == 3
    assert settings.zone_id == "Europe/Berlin"
    assert settings.log_json is True


def test_overrides_win(monkeypatch):
    monkeypatch.setenv("LOADER_EHR", "5")

    settings = LoaderSettings.from_env(ehr=2, workers=None)

    assert settings.ehr == 2
    assert settings.workers is None


def test_counts_must_be_positive():
    with pytest.raises(ValidationError):
        LoaderSettings.from_env(ehr=0)
    with pytest.raises(ValidationError):
        LoaderSettings.from_env(composition_per_ehr=-1)
