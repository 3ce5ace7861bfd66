import sys
import math
import signal
import asyncio
import logging
import argparse
from pathlib import Path
from datetime import datetime, timezone

from dotenv import load_dotenv

from security_docs_generator.config import get_config
from security_docs_generator.errors import ConfigurationError, IngestionStopped
from security_docs_generator.logging_setup import setup_logging
from security_docs_generator.ingest import (
    ElasticsearchConnection,
    delete_all_by_index,
    ensure_index,
    ingest,
    is_data_stream,
    streaming_bulk_ingest,
)
from security_docs_generator.ingest.bulk import response_body
from security_docs_generator.ingest.progress import create_progress_bar
from security_docs_generator.ingest.streaming import operation_size
from security_docs_generator.generators import (
    alerts_stream,
    count_lines,
    generate_alert,
    generate_alerts,
    generate_events,
    get_alert_index,
    ndjson_source,
)
from security_docs_generator.generators.mappings import (
    ALERT_INDEX_MAPPING,
    EVENT_INDEX_MAPPING,
)

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Set on Ctrl+C during ingest-file and risk-engine-ingest, checked between documents
stop_requested = False


def _request_stop(signum, frame):
    global stop_requested
    if stop_requested:
        raise KeyboardInterrupt
    print("\nCaught interrupt signal (Ctrl + C), stopping...")
    stop_requested = True


def positive_int(value: str) -> int:
    number = int(value, 10)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return number


def _exit_on_drop(doc: dict) -> None:
    logger.error(f"Failed to index document: {doc}")
    sys.exit(1)


def _print_report(report) -> None:
    print(
        f"✅ Indexed {report.succeeded}/{report.attempted} documents into {report.index}"
        f" ({report.failed} failed)"
    )


async def cmd_generate_events(args) -> None:
    config = get_config()
    index = args.index or config.event_index
    await ensure_index(index, None if is_data_stream(index) else EVENT_INDEX_MAPPING)
    events = generate_events(args.count, offset_hours=config.event_date_offset_hours)
    _print_report(await ingest(index, events, no_meta=args.no_meta))


async def cmd_generate_alerts(args) -> None:
    index = get_alert_index(args.space)
    await ensure_index(index, ALERT_INDEX_MAPPING)
    alerts = generate_alerts(args.count, args.users, args.hosts, args.space)
    _print_report(await ingest(index, alerts, no_meta=args.no_meta))


async def cmd_ingest_file(args) -> None:
    path = Path(args.path)
    await ensure_index(args.index)
    progress_bar = create_progress_bar(args.index, count_lines(path))

    def on_document(doc: dict):
        if stop_requested:
            raise IngestionStopped("Stopped by user")
        doc["@timestamp"] = datetime.now(timezone.utc).isoformat()
        return {"create": {"_index": args.index}}, doc

    try:
        report = await streaming_bulk_ingest(
            args.index,
            ndjson_source(path),
            flush_bytes=args.flush_bytes,
            flush_interval=args.flush_interval,
            on_document=on_document,
            on_success=lambda: progress_bar.update(1),
            on_drop=_exit_on_drop,
        )
    finally:
        progress_bar.close()
    _print_report(report)


async def cmd_risk_engine_ingest(args) -> None:
    index = get_alert_index(args.space)
    await ensure_index(index, ALERT_INDEX_MAPPING)
    await delete_all_by_index(index, ignore_unavailable=True)

    max_bytes = args.b * 1024 * 1024
    sample = generate_alert("sample", "sample", args.space)
    bytes_per_alert = operation_size({"create": {"_index": index}}, sample)
    alerts_per_batch = max(1, max_bytes // bytes_per_alert)
    runs = math.ceil(args.entities * args.n / alerts_per_batch)

    def on_document(doc: dict):
        if stop_requested:
            raise IngestionStopped("Stopped by user")
        doc["@timestamp"] = datetime.now(timezone.utc).isoformat()
        return {"create": {"_index": index}}, doc

    while runs > 0 and not stop_requested:
        print(
            f"Ingesting batch, approx. {alerts_per_batch} alerts "
            f"(~{alerts_per_batch * bytes_per_alert / (1024 * 1024):.2f}MB), "
            f"{runs} batches remaining..."
        )
        runs -= 1
        report = await streaming_bulk_ingest(
            index,
            alerts_stream(args.entities, args.n, limit=alerts_per_batch, space=args.space),
            flush_bytes=1024 * 1024,
            flush_interval=3.0,
            on_document=on_document,
            on_drop=_exit_on_drop,
        )
        logger.info(f"Batch done: {report.succeeded} alerts in {report.flushes} flush(es)")
        await asyncio.sleep(args.i / 1000)


async def cmd_delete_all(args) -> None:
    response = await delete_all_by_index(args.index)
    deleted = response_body(response).get("deleted", 0)
    print(f"🗑️  Deleted {deleted} documents from {args.index}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="security-docs-generator",
        description="Generate synthetic security data and ingest it into Elasticsearch",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    events = subparsers.add_parser("generate-events", help="Generate fake events")
    events.add_argument("count", type=positive_int, help="number of events")
    events.add_argument("--index", help="target index (default: configured event index)")
    events.add_argument("--no-meta", action="store_true", help="skip _metadata stamping")
    events.set_defaults(func=cmd_generate_events)

    alerts = subparsers.add_parser("generate-alerts", help="Generate fake alerts")
    alerts.add_argument("count", type=positive_int, help="number of alerts")
    alerts.add_argument("--users", type=positive_int, default=10, help="number of users")
    alerts.add_argument("--hosts", type=positive_int, default=10, help="number of hosts")
    alerts.add_argument("--space", default="default", help="Kibana space")
    alerts.add_argument("--no-meta", action="store_true", help="skip _metadata stamping")
    alerts.set_defaults(func=cmd_generate_alerts)

    upload = subparsers.add_parser("ingest-file", help="Stream an NDJSON file into an index")
    upload.add_argument("path", help="NDJSON file, one document per line")
    upload.add_argument("--index", required=True, help="target index or data stream")
    upload.add_argument("--flush-bytes", type=positive_int, default=1024 * 1024)
    upload.add_argument("--flush-interval", type=float, default=3.0, help="seconds")
    upload.set_defaults(func=cmd_ingest_file, stoppable=True)

    risk = subparsers.add_parser(
        "risk-engine-ingest", help="Generate and immediately ingest alerts for the risk engine"
    )
    risk.add_argument("entities", type=positive_int, help="number of entities")
    risk.add_argument("-n", type=positive_int, default=50, help="alerts per entity (default: 50)")
    risk.add_argument("-b", type=positive_int, default=250, help="batch size in MB (default: 250)")
    risk.add_argument("-i", type=positive_int, default=500, help="ms between batches (default: 500)")
    risk.add_argument("--space", default="default", help="Kibana space")
    risk.set_defaults(func=cmd_risk_engine_ingest, stoppable=True)

    delete = subparsers.add_parser("delete-all", help="Delete every document from an index")
    delete.add_argument("index", help="index name")
    delete.set_defaults(func=cmd_delete_all)

    return parser


def main(argv=None) -> int:
    """Command line entry point."""
    args = build_parser().parse_args(argv)

    async def async_main() -> int:
        logger = setup_logging(args.log_level)
        try:
            await args.func(args)
            return 0
        except ConfigurationError as e:
            logger.error(f"Configuration error: {str(e)}")
            print("Fix your environment variables or config.json, and try again.")
            return 1
        except (IngestionStopped, KeyboardInterrupt):
            logger.info("Interrupted by user")
            return 1
        except Exception as e:
            logger.error(f"Command {args.command} failed: {str(e)}", exc_info=True)
            return 1
        finally:
            await ElasticsearchConnection().close()

    # Other commands keep the default Ctrl+C behaviour
    if getattr(args, "stoppable", False):
        signal.signal(signal.SIGINT, _request_stop)
    return asyncio.run(async_main())


if __name__ == "__main__":
    sys.exit(main())
