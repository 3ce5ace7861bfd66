# Synthetic document generators and document sources

from security_docs_generator.generators.documents import (
    generate_event,
    generate_events,
    generate_alert,
    generate_alerts,
    alerts_stream,
    get_alert_index,
)
from security_docs_generator.generators.sources import ndjson_source, count_lines

__all__ = [
    "generate_event",
    "generate_events",
    "generate_alert",
    "generate_alerts",
    "alerts_stream",
    "get_alert_index",
    "ndjson_source",
    "count_lines",
]
