"""
Configuration Tests

Tests EngineConfig defaults and IRONWARS_* environment overrides.
"""

import os

import pytest

from packages.ironwars import EngineConfig, RunProgression, load_config


class TestLoadConfig:

    def test_defaults(self):
        config = load_config(env={})
        assert config == EngineConfig()
        assert config.starting_gold == 120
        assert config.curse_difficulty_threshold == 2
        assert config.content_path is None

    def test_int_overrides(self):
        config = load_config(env={
            "IRONWARS_STARTING_GOLD": "300",
            "IRONWARS_REWARD_CHOICES": "4",
        })
        assert config.starting_gold == 300
        assert config.reward_choices == 4

    def test_string_overrides(self):
        config = load_config(env={
            "IRONWARS_SAVE_PATH": "/tmp/run.json",
            "IRONWARS_CONTENT_PATH": "content.json",
            "IRONWARS_LOG_LEVEL": "DEBUG",
        })
        assert config.save_path == "/tmp/run.json"
        assert config.content_path == "content.json"
        assert config.log_level == "DEBUG"

    def test_empty_value_ignored(self):
        assert load_config(env={"IRONWARS_STARTING_GOLD": ""}).starting_gold == 120

    def test_bad_int(self):
        with pytest.raises(ValueError, match="IRONWARS_STARTING_GOLD"):
            load_config(env={"IRONWARS_STARTING_GOLD": "lots"})

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("IRONWARS_GOLD_PER_REWARD_TIER", "75")
        assert load_config(dotenv=False).gold_per_reward_tier == 75

    def test_dotenv_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("IRONWARS_STARTING_RELIC_COUNT", raising=False)
        (tmp_path / ".env").write_text("IRONWARS_STARTING_RELIC_COUNT=5\n")
        try:
            assert load_config().starting_relic_count == 5
        finally:
            os.environ.pop("IRONWARS_STARTING_RELIC_COUNT", None)


class TestConfigInProgression:

    def test_custom_starting_gold(self, catalog, engine, store):
        progression = RunProgression(catalog, engine, store,
                                     config=EngineConfig(starting_gold=10, starting_relic_count=1))
        assert progression.start_new_run("f_iron").gold == 10

    def test_curse_threshold(self, catalog, engine, store):
        progression = RunProgression(catalog, engine, store,
                                     config=EngineConfig(curse_difficulty_threshold=1))
        assert progression.start_new_run("f_iron", difficulty=1).curses == ["pact"]
