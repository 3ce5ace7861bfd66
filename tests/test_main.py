"""Test the command line entry point."""
import argparse
import logging
import pytest
from unittest.mock import AsyncMock, MagicMock

from security_docs_generator import main as main_module
from security_docs_generator.config import Config
from security_docs_generator.errors import ConfigurationError
from security_docs_generator.ingest.models import IngestionReport


@pytest.fixture
def signal_calls(monkeypatch):
    calls = []
    real_signal = main_module.signal

    class RecordingSignal:
        # Only intercept calls made by main, not asyncio.Runner's own SIGINT handling
        def __getattr__(self, name):
            return getattr(real_signal, name)

        @staticmethod
        def signal(*args):
            calls.append(args)

    monkeypatch.setattr(main_module, "signal", RecordingSignal())
    return calls


@pytest.fixture
def cli(monkeypatch, tmp_path, signal_calls):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(main_module, "stop_requested", False)
    monkeypatch.setattr(main_module, "setup_logging", lambda level: logging.getLogger("cli-test"))
    return monkeypatch


class TestParser:
    def test_positive_int(self):
        assert main_module.positive_int("3") == 3
        with pytest.raises(argparse.ArgumentTypeError):
            main_module.positive_int("0")

    def test_risk_engine_defaults(self):
        args = main_module.build_parser().parse_args(["risk-engine-ingest", "10"])

        assert (args.entities, args.n, args.b, args.i) == (10, 50, 250, 500)


class TestMain:
    def test_configuration_error_exits_with_1(self, cli):
        def broken_config():
            raise ConfigurationError("No Elasticsearch node configured")

        cli.setattr(main_module, "get_config", broken_config)

        assert main_module.main(["generate-events", "5"]) == 1

    def test_generate_events_ingests_into_configured_index(self, cli, signal_calls):
        config = Config.model_validate(
            {"elastic": {"node": "http://localhost:9200", "apiKey": "k"}}
        )
        ensure = AsyncMock()
        ingest = AsyncMock(return_value=IngestionReport(index=config.event_index, attempted=5))
        cli.setattr(main_module, "get_config", lambda: config)
        cli.setattr(main_module, "ensure_index", ensure)
        cli.setattr(main_module, "ingest", ingest)

        assert main_module.main(["generate-events", "5"]) == 0

        ensure.assert_awaited_once_with("logs-testlogs-default", None)
        index, events = ingest.call_args.args
        assert index == "logs-testlogs-default"
        assert len(events) == 5
        assert signal_calls == []

    def test_ingest_file_exits_on_drop(self, cli, tmp_path, signal_calls):
        path = tmp_path / "docs.ndjson"
        path.write_text('{"a": 1}\n')
        cli.setattr(main_module, "ensure_index", AsyncMock())
        cli.setattr(main_module, "create_progress_bar", MagicMock())

        async def dropping_ingest(index, datasource, **kwargs):
            async for doc in datasource:
                kwargs["on_drop"](kwargs["on_document"](doc)[1])

        cli.setattr(main_module, "streaming_bulk_ingest", dropping_ingest)

        with pytest.raises(SystemExit) as exc_info:
            main_module.main(["ingest-file", str(path), "--index", "my-index"])

        assert exc_info.value.code == 1
        assert signal_calls == [(main_module.signal.SIGINT, main_module._request_stop)]


class TestStopRequest:
    def test_first_interrupt_sets_flag(self, cli):
        main_module._request_stop(None, None)

        assert main_module.stop_requested is True

    def test_second_interrupt_raises(self, cli):
        cli.setattr(main_module, "stop_requested", True)

        with pytest.raises(KeyboardInterrupt):
            main_module._request_stop(None, None)
