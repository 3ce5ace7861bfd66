import asyncio
import logging
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Union,
)

from elasticsearch import AsyncElasticsearch
from elasticsearch.serializer import JsonSerializer

from security_docs_generator.ingest.bulk import response_body
from security_docs_generator.ingest.connection import get_es_client
from security_docs_generator.ingest.models import BulkOperation, IngestionReport

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_BYTES = 1024 * 1024
DEFAULT_FLUSH_INTERVAL = 3.0

OnDocument = Callable[[Dict[str, Any]], BulkOperation]

_serializer = JsonSerializer()
_EXHAUSTED = object()


def default_on_document(index: str) -> OnDocument:
    """Create documents in index and let Elasticsearch assign their ids."""

    def on_document(doc: Dict[str, Any]) -> BulkOperation:
        return {"create": {"_index": index}}, dict(doc)

    return on_document


def operation_size(operation: Dict[str, Any], document: Dict[str, Any]) -> int:
    """Size in bytes of the two NDJSON lines an operation adds to a bulk body."""
    size = 0
    for part in (operation, document):
        line = _serializer.dumps(part)
        if isinstance(line, str):
            line = line.encode("utf-8")
        size += len(line) + 1
    return size


def _aiter(datasource: Union[AsyncIterable, Iterable]) -> AsyncIterator:
    if hasattr(datasource, "__aiter__"):
        return datasource.__aiter__()

    async def from_iterable():
        for item in datasource:
            yield item

    return from_iterable()


async def _pull(iterator: AsyncIterator):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _EXHAUSTED


class _BulkFlusher:
    """Sends buffered operations and reports every document's outcome."""

    def __init__(
        self,
        client: AsyncElasticsearch,
        report: IngestionReport,
        on_success: Optional[Callable[[], None]],
        on_drop: Optional[Callable[[Dict[str, Any]], None]],
        max_retries: int,
        initial_backoff: float,
        max_backoff: float,
    ):
        self.client = client
        self.report = report
        self.on_success = on_success
        self.on_drop = on_drop
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff

    async def flush(self, buffer: List[BulkOperation]) -> None:
        """
        Send one buffer, retrying items rejected with 429 (too many requests).

        Every document ends in exactly one on_success or on_drop call.
        """
        self.report.flushes += 1
        pending = buffer
        attempt = 0

        while pending:
            operations: List[Dict[str, Any]] = []
            for operation, document in pending:
                operations.append(operation)
                operations.append(document)

            response = await self.client.bulk(
                index=self.report.index, operations=operations
            )
            items = response_body(response).get("items") or []

            to_retry: List[BulkOperation] = []
            for position, (operation, document) in enumerate(pending):
                if position >= len(items):
                    self._drop(document, {"error": "no result returned for this item"})
                    continue
                result = next(iter(items[position].values()), {})
                status = result.get("status", 500)
                if 200 <= status < 300:
                    if self.on_success is not None:
                        self.on_success()
                elif status == 429 and attempt < self.max_retries:
                    to_retry.append((operation, document))
                else:
                    self._drop(document, items[position])

            if to_retry:
                delay = min(self.max_backoff, self.initial_backoff * 2**attempt)
                logger.warning(
                    f"{len(to_retry)} document(s) rejected with 429, "
                    f"retrying in {delay}s (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
            attempt += 1
            pending = to_retry

    def _drop(self, document: Dict[str, Any], item: Dict[str, Any]) -> None:
        self.report.record_failures([item])
        logger.error(f"Dropped document from {self.report.index}: {item}")
        if self.on_drop is not None:
            self.on_drop(document)


async def streaming_bulk_ingest(
    index: str,
    datasource: Union[AsyncIterable[Dict[str, Any]], Iterable[Dict[str, Any]]],
    *,
    flush_bytes: int = DEFAULT_FLUSH_BYTES,
    flush_interval: float = DEFAULT_FLUSH_INTERVAL,
    on_document: Optional[OnDocument] = None,
    on_success: Optional[Callable[[], None]] = None,
    on_drop: Optional[Callable[[Dict[str, Any]], None]] = None,
    max_retries: int = 3,
    initial_backoff: float = 2.0,
    max_backoff: float = 600.0,
    client: Optional[AsyncElasticsearch] = None,
) -> IngestionReport:
    """
    Stream documents from a possibly unbounded source into Elasticsearch.

    Documents are buffered and flushed as one bulk request once the buffer
    reaches flush_bytes, or once its oldest document has waited
    flush_interval seconds, whichever comes first. The next document is
    pulled from the source while the previous buffer is being flushed;
    flushes themselves never overlap.

    Args:
        index: Default target of the bulk requests
        datasource: Async (or plain) iterable of documents
        flush_bytes: Serialized buffer size that triggers a flush
        flush_interval: Seconds a buffered document may wait before a flush
        on_document: Turns a source document into an (operation, document)
            pair, defaults to a "create" into index
        on_success: Called once per document acknowledged by Elasticsearch
        on_drop: Called with each document that failed permanently
        max_retries: Retries for documents rejected with 429
        initial_backoff: Seconds to wait before the first retry, doubled after each

    Returns:
        IngestionReport for this call
    """
    if flush_bytes < 1:
        raise ValueError(f"flush_bytes must be positive, got {flush_bytes}")
    if flush_interval <= 0:
        raise ValueError(f"flush_interval must be positive, got {flush_interval}")

    report = IngestionReport(index=index)
    flusher = _BulkFlusher(
        client or get_es_client(),
        report,
        on_success,
        on_drop,
        max_retries,
        initial_backoff,
        max_backoff,
    )
    transform = on_document or default_on_document(index)
    loop = asyncio.get_running_loop()
    iterator = _aiter(datasource)

    buffer: List[BulkOperation] = []
    buffer_bytes = 0
    buffer_started = 0.0
    next_doc = asyncio.create_task(_pull(iterator))

    try:
        while True:
            timeout = None
            if buffer:
                timeout = max(0.0, flush_interval - (loop.time() - buffer_started))
            done, _ = await asyncio.wait({next_doc}, timeout=timeout)

            if not done:
                # Source is slower than the interval
                batch, buffer, buffer_bytes = buffer, [], 0
                await flusher.flush(batch)
                continue

            raw = next_doc.result()
            if raw is _EXHAUSTED:
                break
            next_doc = asyncio.create_task(_pull(iterator))

            operation, document = transform(raw)
            if not buffer:
                buffer_started = loop.time()
            buffer.append((operation, document))
            buffer_bytes += operation_size(operation, document)
            report.attempted += 1

            if (
                buffer_bytes >= flush_bytes
                or loop.time() - buffer_started >= flush_interval
            ):
                batch, buffer, buffer_bytes = buffer, [], 0
                await flusher.flush(batch)

        if buffer:
            await flusher.flush(buffer)
    finally:
        if not next_doc.done():
            next_doc.cancel()
        await asyncio.gather(next_doc, return_exceptions=True)
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()

    logger.debug(
        f"Streamed {report.succeeded}/{report.attempted} documents into {index} "
        f"in {report.flushes} flush(es)"
    )
    return report
