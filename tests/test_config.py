"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from timecraft.config import DATA_DIR, Config, load_config
from timecraft.errors import ConfigError


@pytest.fixture
def conf_file(tmp_path):
    def _write(text: str) -> Path:
        path = tmp_path / "timecraft.conf"
        path.write_text(text)
        return path
    return _write


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        config = load_config(tmp_path / "missing.conf", environ={})

        assert config.work_start_hour == 9
        assert config.work_end_hour == 17
        assert config.context_refresh_seconds == 300
        assert config.timezone == "Europe/Berlin"
        assert config.openai_model == "gpt-4o-mini"

    def test_reads_keys(self, conf_file):
        path = conf_file(
            "# TimeCraft\n"
            "TODOIST_API_TOKEN=abc123\n"
            "MS_USER_EMAIL = me@example.com\n"
            "WORK_START_HOUR=8\n"
            "WORK_END_HOUR=18\n"
            "TELEGRAM_ALLOWED_USERS=111, 222\n"
        )
        config = load_config(path, environ={})

        assert config.todoist_api_token == "abc123"
        assert config.ms_user_email == "me@example.com"
        assert config.work_start_hour == 8
        assert config.work_end_hour == 18
        assert config.telegram_allowed_users == [111, 222]

    def test_quoted_values_and_comments(self, conf_file):
        path = conf_file(
            'OPENAI_SYSTEM_PROMPT="You are # a helper" # trailing\n'
            "TIMEZONE=UTC # server zone\n"
        )
        config = load_config(path, environ={})

        assert config.openai_system_prompt == "You are # a helper"
        assert config.timezone == "UTC"

    def test_environment_overrides_file(self, conf_file):
        path = conf_file("TODOIST_API_TOKEN=from-file\nWORK_START_HOUR=8\n")
        config = load_config(path, environ={"TODOIST_API_TOKEN": "from-env", "WORK_START_HOUR": "10"})

        assert config.todoist_api_token == "from-env"
        assert config.work_start_hour == 10

    def test_non_numeric_hour(self, conf_file):
        path = conf_file("WORK_START_HOUR=nine\n")
        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_unknown_keys_ignored(self, conf_file):
        config = load_config(conf_file("SOMETHING_ELSE=1\nnot a setting\n"), environ={})
        assert not hasattr(config, "something_else")


class TestValidate:
    def test_default_is_valid(self):
        Config().validate()

    @pytest.mark.parametrize("start,end", [(17, 9), (9, 9), (-1, 17), (9, 24)])
    def test_invalid_work_hours(self, start, end):
        with pytest.raises(ConfigError):
            Config(work_start_hour=start, work_end_hour=end).validate()

    def test_edge_hours_valid(self):
        Config(work_start_hour=0, work_end_hour=23).validate()

    def test_days_to_include(self):
        with pytest.raises(ConfigError):
            Config(days_to_include=0).validate()


class TestRequire:
    def test_names_missing_keys(self):
        config = Config(todoist_api_token="x")
        with pytest.raises(ConfigError, match="OPENAI_API_KEY, MS_USER_EMAIL"):
            config.require("todoist_api_token", "openai_api_key", "ms_user_email")

    def test_all_present(self):
        Config(todoist_api_token="x").require("todoist_api_token")


class TestDataPath:
    def test_default(self):
        assert Config().data_path == DATA_DIR

    def test_expands_user(self):
        assert Config(data_dir="~/tc").data_path == Path.home() / "tc"
