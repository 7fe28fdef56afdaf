"""Tests for the notion-relay command line."""
from unittest.mock import patch

import pytest

from notion_relay.cli import EXIT_CONFIG, EXIT_FAILED, EXIT_LOCKED, EXIT_OK, build_parser, main
from notion_relay.config import RelayConfig
from notion_relay.core.exceptions import RunLockedError
from notion_relay.runner import RunSummary
from notion_relay.sync import SyncDirection, SyncPassResult


@pytest.fixture
def runner_cls(relay_config):
    with patch("notion_relay.cli.load_config", return_value=relay_config), \
            patch("notion_relay.cli.RelayRunner") as runner_cls:
        runner_cls.return_value.config = relay_config
        yield runner_cls


def aborted(direction):
    result = SyncPassResult(direction)
    result.aborted = True
    result.error = "down"
    return result


class TestSync:

    def test_both_directions_by_default(self, runner_cls):
        runner = runner_cls.return_value
        runner.sync.return_value = [SyncPassResult(SyncDirection.FORWARD), SyncPassResult(SyncDirection.REVERSE)]

        assert main(["sync"]) == EXIT_OK
        runner.sync.assert_called_once_with([SyncDirection.FORWARD, SyncDirection.REVERSE])

    def test_single_direction(self, runner_cls):
        runner = runner_cls.return_value
        runner.sync.return_value = [SyncPassResult(SyncDirection.REVERSE)]

        main(["sync", "--direction", "reverse"])

        runner.sync.assert_called_once_with([SyncDirection.REVERSE])

    def test_aborted_pass_exits_nonzero(self, runner_cls):
        runner_cls.return_value.sync.return_value = [aborted(SyncDirection.FORWARD)]
        assert main(["sync"]) == EXIT_FAILED

    def test_no_lock_flag(self, runner_cls, relay_config):
        runner_cls.return_value.sync.return_value = []
        main(["--no-lock", "sync"])
        runner_cls.assert_called_once_with(relay_config, use_lock=False)


class TestExitCodes:

    def test_missing_config(self):
        with patch("notion_relay.cli.load_config", return_value=RelayConfig()):
            assert main(["sync"]) == EXIT_CONFIG

    def test_locked(self, runner_cls):
        runner_cls.return_value.run.side_effect = RunLockedError("busy", holder="other")
        assert main(["run"]) == EXIT_LOCKED

    def test_run_failure(self, runner_cls):
        runner_cls.return_value.run.return_value = RunSummary(sync_results=[aborted(SyncDirection.REVERSE)])
        assert main(["run"]) == EXIT_FAILED

    def test_run_success(self, runner_cls):
        runner_cls.return_value.run.return_value = RunSummary(outbox={"failed": 0})
        assert main(["run"]) == EXIT_OK

    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_FAILED


class TestDelivery:

    def test_deliver_passes_files_and_text(self, runner_cls):
        runner = runner_cls.return_value
        runner.deliver_files.return_value = []

        assert main(["deliver", "a.html", "b.html", "--text", "hi"]) == EXIT_OK
        runner.deliver_files.assert_called_once_with(["a.html", "b.html"], text="hi")

    def test_outbox_options(self, runner_cls):
        runner = runner_cls.return_value
        runner.deliver_outbox.return_value = {"sent": 1, "skipped": 0, "failed": 0, "trashed": 1, "total": 1}

        assert main(["outbox", "--folder", "out", "--delete-after-send"]) == EXIT_OK
        runner.deliver_outbox.assert_called_once_with(folder="out", delete_after_send=True)

    def test_outbox_defaults_to_config_delete_setting(self, runner_cls):
        runner = runner_cls.return_value
        runner.deliver_outbox.return_value = {"sent": 0, "skipped": 0, "failed": 1, "trashed": 0, "total": 1}

        assert main(["outbox"]) == EXIT_FAILED
        runner.deliver_outbox.assert_called_once_with(folder=None, delete_after_send=None)


class TestSecretsAndCache:

    def test_set_secret(self):
        with patch("notion_relay.cli.save_secret", return_value=True) as save:
            assert main(["set-secret", "notion_token", "--value", " abc "]) == EXIT_OK
        save.assert_called_once_with("notion_token", "abc")

    def test_set_secret_rejects_unknown_key(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["set-secret", "password"])

    def test_cache_clear(self, runner_cls):
        with patch("notion_relay.cli.SentRecordCache") as cache_cls:
            cache_cls.from_config.return_value.clear.return_value = True
            assert main(["cache", "clear"]) == EXIT_OK

    def test_cache_show(self, runner_cls):
        with patch("notion_relay.cli.SentRecordCache") as cache_cls:
            cache_cls.from_config.return_value.entries.return_value = {
                "ab" * 32: {"name": "r.html", "sent_at": 1_700_000_000.0},
            }
            assert main(["cache", "show"]) == EXIT_OK
