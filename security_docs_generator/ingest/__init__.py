# Ingestion helpers: index management, chunked and streaming bulk ingestion

from security_docs_generator.ingest.connection import ElasticsearchConnection, get_es_client
from security_docs_generator.ingest.indices import (
    ensure_index,
    is_data_stream,
    delete_data_stream_safe,
    delete_source_index,
    delete_all_by_index,
)
from security_docs_generator.ingest.bulk import (
    audit_bulk_response,
    bulk_ingest,
    bulk_upsert,
    ingest,
)
from security_docs_generator.ingest.streaming import streaming_bulk_ingest
from security_docs_generator.ingest.models import BulkOperation, IngestionReport

__all__ = [
    "ElasticsearchConnection",
    "get_es_client",
    "ensure_index",
    "is_data_stream",
    "delete_data_stream_safe",
    "delete_source_index",
    "delete_all_by_index",
    "audit_bulk_response",
    "bulk_ingest",
    "bulk_upsert",
    "ingest",
    "streaming_bulk_ingest",
    "BulkOperation",
    "IngestionReport",
]
