"""Tests for runtime settings and the base domain lookup."""

import pytest

from wpforge.models.setting import SystemSetting
from wpforge.services.settings_service import (
    DOMAIN_KEY,
    get_domain,
    get_setting,
    set_setting,
)


class TestSettings:

    def test_missing_setting_returns_default(self):
        assert get_setting("nope") is None
        assert get_setting("nope", "fallback") == "fallback"

    def test_set_creates_then_updates(self):
        set_setting("greeting", "hello")
        set_setting("greeting", "hi")

        assert SystemSetting.query.filter_by(key="greeting").count() == 1
        assert get_setting("greeting") == "hi"

    def test_blank_value_counts_as_unset(self):
        set_setting("greeting", "")
        assert get_setting("greeting", "default") == "default"


class TestDomain:

    def test_falls_back_to_config(self):
        assert get_domain() == "sites.test"

    def test_setting_wins_and_is_normalized(self):
        set_setting(DOMAIN_KEY, "  Sites.Example.COM. ")
        assert get_domain() == "sites.example.com"

    def test_raises_when_unset(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "BASE_DOMAIN", None)
        with pytest.raises(RuntimeError):
            get_domain()
