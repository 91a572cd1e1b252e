"""Unit tests for environment-driven defaults in ranking.settings."""

import pytest

from ranking import settings


def test_env_float_falls_back_to_default_when_unset(monkeypatch) -> None:
    monkeypatch.delenv("MAP_RANKING_TEST_VALUE", raising=False)
    assert settings._env_float("MAP_RANKING_TEST_VALUE", 1.5) == 1.5


def test_env_float_treats_blank_as_unset(monkeypatch) -> None:
    monkeypatch.setenv("MAP_RANKING_TEST_VALUE", "   ")
    assert settings._env_float("MAP_RANKING_TEST_VALUE", 2.0) == 2.0


def test_env_float_parses_value(monkeypatch) -> None:
    monkeypatch.setenv("MAP_RANKING_TEST_VALUE", "0.75")
    assert settings._env_float("MAP_RANKING_TEST_VALUE", 2.0) == 0.75


def test_env_int_parses_value(monkeypatch) -> None:
    monkeypatch.setenv("MAP_RANKING_TEST_VALUE", "12")
    assert settings._env_int("MAP_RANKING_TEST_VALUE", 50) == 12


@pytest.mark.parametrize(("reader", "raw"), [(settings._env_float, "fast"), (settings._env_int, "2.5")])
def test_malformed_values_fail_fast(monkeypatch, reader, raw: str) -> None:
    monkeypatch.setenv("MAP_RANKING_TEST_VALUE", raw)
    with pytest.raises(RuntimeError, match="MAP_RANKING_TEST_VALUE must be"):
        reader("MAP_RANKING_TEST_VALUE", 1)


def test_shipped_defaults() -> None:
    assert settings.DEFAULT_MAX_PAST_HOURS == 24.0
    assert settings.DEFAULT_MAX_FUTURE_DAYS == 30.0
    assert settings.DEFAULT_MIN_CLUSTER_DISTANCE_KM == 0.5
    assert settings.DEFAULT_MAX_RESULTS == 50
