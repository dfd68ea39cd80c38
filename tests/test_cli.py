# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the CLI commands.
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import redis
from click.testing import CliRunner

from oplogstats.cli.main import cli
from oplogstats.config import Config
from oplogstats.errors import StoreUnavailable
from oplogstats.processing.server import open_stores
from oplogstats.processing.summary.quantile import summarize

from conftest import make_series


def _env(tmp_path):
    return {
        "OPLOGSTATS_DB": str(tmp_path / "metrics.db"),
        "REDIS_URL": "redis://localhost:6379/0",
        "OPLOGSTATS_STREAM": "oplog:rs",
    }


def test_help_lists_commands():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("run", "tail", "record", "summaries"):
        assert command in result.output


def test_summaries_without_data(tmp_path):
    result = CliRunner().invoke(
        cli, ["--config", str(tmp_path / "none.yaml"), "summaries", "cpu"], env=_env(tmp_path)
    )
    assert result.exit_code == 0
    assert "No summaries for cpu" in result.output


def test_summaries_renders_table(tmp_path, monkeypatch):
    for name, value in _env(tmp_path).items():
        monkeypatch.setenv(name, value)
    config = Config(config_path=tmp_path / "none.yaml")
    _, _, summary_store = open_stores(config)
    summary_store.upsert(summarize(make_series("abc", key="cpu", at=1_700_000_040, values=range(1, 11))))

    result = CliRunner().invoke(cli, ["--config", str(tmp_path / "none.yaml"), "summaries", "cpu"])

    assert result.exit_code == 0
    assert "Summaries: cpu" in result.output
    assert "5.5" in result.output


def test_run_rejects_invalid_config(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("pipeline:\n  queue_size: 0\n")

    result = CliRunner().invoke(cli, ["--config", str(config_path), "run"], env=_env(tmp_path))

    assert result.exit_code == 2
    assert "queue_size" in result.output


def _fields(op, obj, query=None):
    fields = {b'op': op.encode(), b'ns': b'metrics.raw', b'h': b'7', b'v': b'2', b'o': json.dumps(obj).encode()}
    if query is not None:
        fields[b'o2'] = json.dumps(query).encode()
    return fields


def _invoke(tmp_path, *args):
    return CliRunner().invoke(cli, ["--config", str(tmp_path / "none.yaml"), *args], env=_env(tmp_path))


def _patched_client(client):
    return patch("oplogstats.cli.main.create_redis_client", return_value=client)


class FrozenDatetime(datetime):

    @classmethod
    def now(cls, tz=None):
        return datetime(2023, 11, 14, 22, 14, 5, tzinfo=timezone.utc)


class TestTail:

    def test_prints_latest_then_tailed_records(self, tmp_path):
        client = AsyncMock()
        client.xrevrange.return_value = [(b'1700000000000-0', _fields('i', {'_id': 'abc'}))]
        client.xread.side_effect = [
            [(b'oplog:rs', [(b'1700000000001-0', _fields('u', {'$push': {'v': 1}}, {'_id': 'abc'}))])],
            redis.ConnectionError("Connection reset by peer"),
        ]

        with _patched_client(client):
            result = _invoke(tmp_path, "tail")

        assert result.exit_code == 1
        assert "1700000000000-0" in result.output
        assert "1700000000001-0" in result.output
        assert result.output.index("1700000000000-0") < result.output.index("1700000000001-0")
        assert "o2=" in result.output
        assert "Error:" in result.output
        assert client.xread.await_args_list[0].args[0] == {"oplog:rs": "1700000000000-0"}
        client.aclose.assert_awaited_once()

    def test_empty_stream_tails_from_start(self, tmp_path):
        client = AsyncMock()
        client.xrevrange.return_value = []
        client.xread.side_effect = redis.ConnectionError("Connection reset by peer")

        with _patched_client(client):
            result = _invoke(tmp_path, "tail")

        assert client.xread.await_args_list[0].args[0] == {"oplog:rs": "0-0"}
        assert result.exit_code == 1

    def test_unreachable_redis_exits_non_zero(self, tmp_path):
        client = AsyncMock()
        client.xrevrange.side_effect = redis.ConnectionError("Connection refused")

        with _patched_client(client):
            result = _invoke(tmp_path, "tail")

        assert result.exit_code == 1
        assert "Connection refused" in result.output
        client.xread.assert_not_awaited()


class TestRecord:

    def test_first_insert_then_update(self, tmp_path, monkeypatch):
        monkeypatch.setattr("oplogstats.cli.main.datetime", FrozenDatetime)
        client = AsyncMock()
        client.xadd.side_effect = [b'1700000045000-0', b'1700000045000-1']

        with _patched_client(client):
            first = _invoke(tmp_path, "record", "cpu", "0.5")
            second = _invoke(tmp_path, "record", "cpu", "0.7")

        assert first.exit_code == 0
        assert second.exit_code == 0
        assert "Recorded cpu=0.5" in first.output
        assert "1 values" in first.output
        assert "2 values" in second.output

        (stream, insert_fields), (_, update_fields) = [call.args for call in client.xadd.await_args_list]
        assert stream == "oplog:rs"
        assert insert_fields['op'] == 'i'
        assert insert_fields['ns'] == 'metrics.raw'
        series_id = json.loads(insert_fields['o'])['_id']
        assert update_fields['op'] == 'u'
        assert json.loads(update_fields['o2']) == {'_id': series_id}

    def test_append_failure_exits_non_zero(self, tmp_path):
        client = AsyncMock()
        client.xadd.side_effect = redis.ConnectionError("Connection refused")

        with _patched_client(client):
            result = _invoke(tmp_path, "record", "cpu", "0.5")

        assert result.exit_code == 1
        assert "Failed to append" in result.output
        client.aclose.assert_awaited_once()


def test_summaries_store_error_exits_non_zero(tmp_path):
    summary_store = MagicMock()
    summary_store.list_for_key.side_effect = StoreUnavailable("database is locked")

    with patch("oplogstats.cli.main.open_stores", return_value=(None, None, summary_store)):
        result = _invoke(tmp_path, "summaries", "cpu")

    assert result.exit_code == 1
    assert "database is locked" in result.output
