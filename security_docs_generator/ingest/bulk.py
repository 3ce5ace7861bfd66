import logging
from typing import Optional, Dict, Any, List, Sequence

from elasticsearch import AsyncElasticsearch

from security_docs_generator.ingest.connection import get_es_client
from security_docs_generator.ingest.metadata import add_metadata_to_doc
from security_docs_generator.ingest.models import BULK_ACTIONS, IngestionReport
from security_docs_generator.ingest.progress import create_progress_bar

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10000


def response_body(response) -> Dict[str, Any]:
    # ObjectApiResponse wraps the parsed body; tests pass plain dicts
    body = getattr(response, "body", response)
    return body if isinstance(body, dict) else {}


def failed_items(response) -> List[Dict[str, Any]]:
    """Return the per-item entries of a bulk response that carry an error."""
    body = response_body(response)
    if not body.get("errors"):
        return []
    failed = []
    for item in body.get("items") or []:
        if not isinstance(item, dict):
            continue
        if any(isinstance(result, dict) and result.get("error") for result in item.values()):
            failed.append(item)
    return failed


def audit_bulk_response(response, context: str) -> List[Dict[str, Any]]:
    """
    Log the failed items of a bulk response without raising.

    Whether to continue after a partial failure is up to the caller.

    Args:
        response: Response of a bulk call
        context: Message logged together with the failed items

    Returns:
        The failed items, empty when the response reports no errors
    """
    try:
        failed = failed_items(response)
    except Exception as e:
        logger.error(f"{context} Could not inspect bulk response: {str(e)}")
        return []
    if failed:
        logger.error(f"{context} {len(failed)} failed item(s): {failed}")
    return failed


def _chunks(documents: Sequence[Dict[str, Any]], size: int):
    for start in range(0, len(documents), size):
        yield documents[start : start + size]


async def bulk_upsert(
    operations: List[Dict[str, Any]],
    *,
    refresh: bool = True,
    client: Optional[AsyncElasticsearch] = None,
):
    """
    Send a pre-built bulk body of alternating operation and document entries.

    Use when the caller builds the body itself, e.g. for mixed indices or
    explicit document ids.
    """
    client = client or get_es_client()
    response = await client.bulk(operations=operations, refresh=refresh)
    audit_bulk_response(
        response, "Bulk request reported errors. Some documents may have failed."
    )
    return response


async def bulk_ingest(
    index: str,
    documents: Sequence[Dict[str, Any]],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    action: str = "index",
    show_progress: bool = False,
    metadata: bool = False,
    refresh: bool = True,
    pipeline: Optional[str] = None,
    client: Optional[AsyncElasticsearch] = None,
) -> IngestionReport:
    """
    Ingest an in-memory list of documents into one index in chunks.

    Each chunk is sent as one bulk request after the previous one returned.
    Items rejected by Elasticsearch are logged and counted, and ingestion
    moves on to the next chunk. Transport errors are not caught.

    Args:
        index: Target index or data stream
        documents: Documents to ingest, in order
        chunk_size: Maximum number of documents per bulk request
        action: "index" or "create"
        show_progress: Display a progress bar over all documents
        metadata: Stamp each document with a _metadata block
        refresh: Make the documents searchable when each request returns
        pipeline: Ingest pipeline to run the documents through

    Returns:
        IngestionReport for this call
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if action not in BULK_ACTIONS:
        raise ValueError(f"action must be one of {BULK_ACTIONS}, got {action!r}")

    client = client or get_es_client()
    report = IngestionReport(index=index)
    progress_bar = create_progress_bar(index, len(documents)) if show_progress else None

    try:
        for chunk in _chunks(documents, chunk_size):
            operations: List[Dict[str, Any]] = []
            for doc in chunk:
                operations.append({action: {}})
                operations.append(add_metadata_to_doc(doc) if metadata else doc)

            response = await client.bulk(
                index=index, operations=operations, refresh=refresh, pipeline=pipeline
            )
            report.attempted += len(chunk)
            report.flushes += 1
            report.record_failures(
                audit_bulk_response(
                    response,
                    "Bulk ingest reported errors. Continuing with potential partial data.",
                )
            )
            if progress_bar is not None:
                progress_bar.update(len(chunk))
    finally:
        if progress_bar is not None:
            progress_bar.close()

    logger.debug(
        f"Ingested {report.succeeded}/{report.attempted} documents into {index} "
        f"in {report.flushes} request(s)"
    )
    return report


async def ingest(
    index: str,
    documents: Sequence[Dict[str, Any]],
    *,
    no_meta: bool = False,
    pipeline: Optional[str] = None,
    client: Optional[AsyncElasticsearch] = None,
) -> IngestionReport:
    """Ingest generated documents the way every generator command does."""
    return await bulk_ingest(
        index,
        documents,
        chunk_size=DEFAULT_CHUNK_SIZE,
        action="create",
        show_progress=True,
        metadata=not no_meta,
        refresh=True,
        pipeline=pipeline,
        client=client,
    )
