"""Tests for settings, seed file loading and logging setup."""

import json
import logging

import pytest
import yaml

from quotesync.config import (
    AppSettings,
    ConfigurationError,
    RemoteSettings,
    SchedulingSettings,
    get_settings,
    load_seed_records,
    reload_settings
)
import quotesync.config.settings as settings_module
from quotesync.store import RecordOrigin
from quotesync.utils.logging import get_logger, log_duration, setup_logging, sync_context

from fakes import remote


class TestSettings:
    """pydantic-settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in ("QUOTESYNC_REMOTE_BASE_URL", "QUOTESYNC_SCHEDULE_SYNC_INTERVAL_SECONDS"):
            monkeypatch.delenv(name, raising=False)

        app = AppSettings()

        assert app.remote.remote_type == "jsonplaceholder"
        assert app.remote.base_url == "https://jsonplaceholder.typicode.com"
        assert app.remote.fetch_limit == 10
        assert app.scheduling.sync_interval_seconds == 30.0
        assert app.scheduling.initial_delay_seconds == 2.0
        assert app.notifications.display_seconds == 5.0
        assert app.store.category_case_sensitive is True

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("QUOTESYNC_REMOTE_FETCH_LIMIT", "25")
        monkeypatch.setenv("QUOTESYNC_REMOTE_BASE_URL", "http://quotes.internal")
        monkeypatch.setenv("QUOTESYNC_SCHEDULE_ENABLED", "false")

        assert RemoteSettings().fetch_limit == 25
        assert AppSettings().remote.base_url == "http://quotes.internal"
        assert SchedulingSettings().enabled is False

    def test_reload_picks_up_environment(self, monkeypatch):
        monkeypatch.setattr(settings_module, "settings", settings_module.settings)
        monkeypatch.setenv("QUOTESYNC_SERVER_PORT", "9191")

        reloaded = reload_settings()

        assert reloaded.server.port == 9191
        assert get_settings() is reloaded


class TestSeedLoader:
    """YAML and JSON seed collections."""

    def test_load_yaml_seed(self, tmp_path):
        seed_file = tmp_path / "seed.yaml"
        seed_file.write_text(yaml.safe_dump([
            {"text": "Know thyself.", "category": "Philosophy", "author": "Delphi"},
            {"text": "Less is more.", "category": "Design"}
        ]))

        records = load_seed_records(seed_file)

        assert [(r.text, r.category) for r in records] == [
            ("Know thyself.", "Philosophy"),
            ("Less is more.", "Design")
        ]
        assert records[0].extra == {"author": "Delphi"}
        assert all(r.origin == RecordOrigin.LOCAL for r in records)

    def test_load_json_seed(self, tmp_path):
        seed_file = tmp_path / "seed.json"
        seed_file.write_text(json.dumps([{"text": "a", "category": "b"}]))

        assert [r.text for r in load_seed_records(str(seed_file))] == ["a"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_seed_records(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path):
        seed_file = tmp_path / "seed.txt"
        seed_file.write_text("[]")

        with pytest.raises(ConfigurationError, match="Unsupported file format"):
            load_seed_records(seed_file)

    def test_invalid_yaml(self, tmp_path):
        seed_file = tmp_path / "seed.yml"
        seed_file.write_text("- text: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_seed_records(seed_file)

    @pytest.mark.parametrize("content", ["[]", "{\"text\": \"a\", \"category\": \"b\"}"])
    def test_seed_must_be_non_empty_list(self, tmp_path, content):
        seed_file = tmp_path / "seed.json"
        seed_file.write_text(content)

        with pytest.raises(ConfigurationError, match="non-empty list"):
            load_seed_records(seed_file)

    def test_invalid_seed_quote(self, tmp_path):
        seed_file = tmp_path / "seed.json"
        seed_file.write_text(json.dumps([{"text": "ok", "category": "c"}, {"text": "  ", "category": "c"}]))

        with pytest.raises(ConfigurationError, match="index 1"):
            load_seed_records(seed_file)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    before, level = set(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def read_events(log_file):
    for handler in logging.getLogger().handlers:
        handler.flush()
    return [json.loads(line) for line in log_file.read_text().splitlines() if line.startswith("{")]


class TestLoggingSetup:
    """structlog configuration with file and console handlers."""

    def test_json_events_written_to_rotating_file(self, tmp_path, restore_root_logging):
        log_file = tmp_path / "logs" / "quotesync.log"

        setup_logging(log_level="debug", log_format="json", log_file=str(log_file))
        get_logger("tests.logging").info("Sync completed", added=2)

        event = next(e for e in read_events(log_file) if e["event"] == "Sync completed")
        assert event["added"] == 2
        assert event["level"] == "info"
        assert event["logger"] == "tests.logging"

    def test_handlers_are_replaced_on_reconfigure(self, tmp_path, restore_root_logging):
        setup_logging(log_level="INFO", log_format="console", log_file=str(tmp_path / "a.log"))
        setup_logging(log_level="INFO", log_format="console", log_file=str(tmp_path / "b.log"))

        assert len(logging.getLogger().handlers) == 2

    def test_sync_context_is_merged_into_events(self, tmp_path, restore_root_logging):
        log_file = tmp_path / "quotesync.log"
        setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))
        logger = get_logger("tests.context")

        with sync_context(sync_run=3):
            logger.info("Inside run")
        logger.info("Outside run")

        events = {e["event"]: e for e in read_events(log_file)}
        assert events["Inside run"]["sync_run"] == 3
        assert "sync_run" not in events["Outside run"]

    @pytest.mark.asyncio
    async def test_pull_events_carry_run_number(self, engine, client, tmp_path, restore_root_logging):
        log_file = tmp_path / "quotesync.log"
        setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))
        client.records = [remote("t2", "B")]

        await engine.pull()
        await engine.pull()

        runs = [e["sync_run"] for e in read_events(log_file) if e["event"] == "Sync completed"]
        assert runs == [1, 2]

    def test_log_duration_reports_operation(self, tmp_path, restore_root_logging):
        log_file = tmp_path / "quotesync.log"
        setup_logging(log_level="DEBUG", log_format="json", log_file=str(log_file))

        @log_duration
        def reindex():
            return 42

        @log_duration
        def explode():
            raise RuntimeError("nope")

        assert reindex() == 42
        with pytest.raises(RuntimeError):
            explode()

        events = read_events(log_file)
        finished = next(e for e in events if e["event"] == "Operation finished")
        failed = next(e for e in events if e["event"] == "Operation failed")
        assert finished["operation"].endswith("reindex")
        assert finished["duration_ms"] >= 0
        assert failed["error"] == "nope"
