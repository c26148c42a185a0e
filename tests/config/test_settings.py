"""Tests for environment-driven settings."""

from pi_perle_stack.config.settings import reload_settings, settings


class TestSettings:
    def test_defaults(self):
        assert settings.source.kind == "page"
        assert settings.delivery.channel == "telegram"
        assert settings.schedule.selection_window == 5

    def test_unknown_name_is_attribute_error(self):
        assert hasattr(settings, "no_such_group") is False
        assert getattr(settings, "no_such_group", None) is None

    def test_min_text_length_has_floor(self, monkeypatch):
        monkeypatch.setenv("PERLE_MIN_TEXT_LENGTH", "3")
        reload_settings()
        assert settings.source.min_text_length == 10

    def test_min_text_length_can_be_raised(self, monkeypatch):
        monkeypatch.setenv("PERLE_MIN_TEXT_LENGTH", "25")
        reload_settings()
        assert settings.source.min_text_length == 25

    def test_hashtags_split(self, monkeypatch):
        monkeypatch.setenv("HASHTAGS", "#a, #b,,")
        reload_settings()
        assert settings.delivery.hashtags == ("#a", "#b")
