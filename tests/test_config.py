import json

import pytest

from santa.core.config import load_settings
from santa.core.roster import DEFAULT_PARTICIPANTS, build_roster, load_roster
from santa.services.rate_limit import RateLimiter


@pytest.fixture
def base_env(monkeypatch):
    for name in ("ROSTER_PATH", "CYCLE_ID", "CACHE_PATH", "MAX_ATTEMPTS", "DRAW_SEED", "ADMIN_IDS", "LOG_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///santa.db")
    return monkeypatch


def test_settings_defaults(base_env):
    settings = load_settings()
    assert settings.cycle_id == "family-exchange"
    assert settings.max_attempts == 50
    assert settings.draw_seed is None
    assert settings.admin_ids == frozenset()
    assert settings.roster_path is None


def test_settings_parse_admins_and_seed(base_env):
    base_env.setenv("ADMIN_IDS", "11, 22,")
    base_env.setenv("DRAW_SEED", "7")
    base_env.setenv("MAX_ATTEMPTS", "5")
    settings = load_settings()
    assert settings.admin_ids == frozenset({11, 22})
    assert settings.draw_seed == 7
    assert settings.max_attempts == 5


def test_settings_require_bot_token(base_env):
    base_env.delenv("BOT_TOKEN")
    with pytest.raises(ValueError):
        load_settings()


def test_settings_reject_non_numeric_seed(base_env):
    base_env.setenv("DRAW_SEED", "lucky")
    with pytest.raises(ValueError):
        load_settings()


def test_default_roster_is_the_family():
    roster = load_roster(None)
    assert roster.participants == DEFAULT_PARTICIPANTS
    assert roster.prior_cycle["Alan"] == "Carrie"


def test_roster_file_is_loaded(tmp_path):
    path = tmp_path / "roster.json"
    path.write_text(json.dumps({"participants": ["A", "B", "C"], "prior_cycle": {"A": "B"}}), encoding="utf-8")
    roster = load_roster(str(path))
    assert roster.participants == ("A", "B", "C")
    assert roster.prior_cycle == {"A": "B"}


def test_roster_rejects_duplicates_and_unknown_givers():
    with pytest.raises(ValueError):
        build_roster(["A", "B", "A"])
    with pytest.raises(ValueError):
        build_roster(["A", "B"], {"Zed": "A"})


def test_roster_allows_prior_receiver_outside_group():
    roster = build_roster(["A", "B"], {"A": "Someone who left"})
    assert roster.prior_cycle == {"A": "Someone who left"}


def test_rate_limiter_blocks_then_recovers():
    limiter = RateLimiter(max_calls=2, period_seconds=10)
    assert limiter.allow("1:assign", now=0).allowed
    assert limiter.allow("1:assign", now=1).allowed
    blocked = limiter.allow("1:assign", now=2)
    assert not blocked.allowed
    assert blocked.retry_after == pytest.approx(8)
    assert limiter.allow("2:assign", now=2).allowed
    assert limiter.allow("1:assign", now=10).allowed
