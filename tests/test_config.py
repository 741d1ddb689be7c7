from __future__ import annotations

from pathlib import Path

import pytest

from twentyq.config import load_settings

_VARS = (
    "TWENTYQ_HOST",
    "TWENTYQ_PORT",
    "TWENTYQ_LOG_LEVEL",
    "TWENTYQ_FINISHED_TTL_SEC",
    "TWENTYQ_SWEEP_INTERVAL_SEC",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path: Path) -> None:
    settings = load_settings(dotenv_path=tmp_path / "missing.env")

    assert settings.port == 8080
    assert settings.host == "0.0.0.0"
    assert settings.log_level == "INFO"
    assert settings.finished_ttl_sec == 300
    assert settings.sweep_interval_sec == 30


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TWENTYQ_PORT", "9000")
    monkeypatch.setenv("TWENTYQ_LOG_LEVEL", "debug")
    monkeypatch.setenv("TWENTYQ_SWEEP_INTERVAL_SEC", "0")

    settings = load_settings(dotenv_path=tmp_path / "missing.env")

    assert settings.port == 9000
    assert settings.log_level == "DEBUG"
    assert settings.sweep_interval_sec == 0


def test_dotenv_does_not_override_real_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("TWENTYQ_PORT=7000\nTWENTYQ_FINISHED_TTL_SEC=60\n")
    monkeypatch.setenv("TWENTYQ_PORT", "9001")
    # load_dotenv writes straight into os.environ; register it so monkeypatch restores it.
    monkeypatch.setenv("TWENTYQ_FINISHED_TTL_SEC", "")
    monkeypatch.delenv("TWENTYQ_FINISHED_TTL_SEC")

    settings = load_settings(dotenv_path=env_file)

    assert settings.port == 9001
    assert settings.finished_ttl_sec == 60


@pytest.mark.parametrize("value", ["eighty", "-1"])
def test_bad_integers_rejected(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, value: str) -> None:
    monkeypatch.setenv("TWENTYQ_PORT", value)

    with pytest.raises(ValueError) as e:
        load_settings(dotenv_path=tmp_path / "missing.env")

    assert "TWENTYQ_PORT" in str(e.value)
