import logging
from typing import Optional, Dict, Any, Set, List, Union

from elasticsearch import AsyncElasticsearch, NotFoundError

from security_docs_generator.ingest.connection import get_es_client

logger = logging.getLogger(__name__)

# Index templates shipped with Elasticsearch turn these names into data streams
DATA_STREAM_PREFIXES = ("logs-", "metrics-", "traces-")

DEFAULT_TOTAL_FIELDS_LIMIT = 10000
DEFAULT_INDEX_SETTINGS = {
    "index.mapping.total_fields.limit": DEFAULT_TOTAL_FIELDS_LIMIT,
}

# Targets confirmed to exist during this process
_known_targets: Set[str] = set()


def is_data_stream(name: str) -> bool:
    return name.startswith(DATA_STREAM_PREFIXES)


def forget_target(name: str) -> None:
    _known_targets.discard(name)


def reset_known_targets() -> None:
    _known_targets.clear()


async def _data_stream_exists(client: AsyncElasticsearch, name: str) -> bool:
    try:
        await client.indices.get_data_stream(name=name)
    except NotFoundError:
        return False
    return True


async def ensure_index(
    name: str,
    mappings: Optional[Dict[str, Any]] = None,
    settings: Optional[Dict[str, Any]] = None,
    *,
    client: Optional[AsyncElasticsearch] = None,
) -> None:
    """
    Make sure an index or data stream exists, creating it when absent.

    Plain indices are created with the given mappings and with settings
    merged over DEFAULT_INDEX_SETTINGS. Data streams are created by name
    only; their mappings come from the matching index template.

    Args:
        name: Index or data stream name
        mappings: Optional field mapping definition
        settings: Optional index settings, these win over the defaults
        client: Client to use instead of the shared connection

    Raises:
        ValueError: when name is empty
        elasticsearch.ApiError: when creation is rejected
    """
    if not name:
        raise ValueError("Index name must be a non-empty string")

    if name in _known_targets:
        return

    client = client or get_es_client()
    data_stream = is_data_stream(name)

    if data_stream:
        exists = await _data_stream_exists(client, name)
    else:
        exists = bool(await client.indices.exists(index=name))

    if exists:
        _known_targets.add(name)
        return

    kind = "Data stream" if data_stream else "Index"
    logger.info(f"{kind} {name} does not exist, creating...")

    try:
        if data_stream:
            if mappings or settings:
                logger.debug(
                    f"Ignoring mappings/settings for data stream {name}, "
                    "they are taken from its index template"
                )
            await client.indices.create_data_stream(name=name)
        else:
            await client.indices.create(
                index=name,
                mappings=mappings,
                settings={**DEFAULT_INDEX_SETTINGS, **(settings or {})},
            )
    except Exception:
        logger.exception(f"{kind} creation failed for {name}")
        raise

    _known_targets.add(name)
    logger.info(f"{kind} created: {name}")


async def delete_data_stream_safe(
    name: str, *, client: Optional[AsyncElasticsearch] = None
) -> None:
    """Delete a data stream, treating a missing one as already deleted."""
    client = client or get_es_client()
    forget_target(name)
    try:
        await client.indices.delete_data_stream(name=name)
    except NotFoundError:
        logger.info(f"Data stream {name} does not yet exist, and will be created.")


async def delete_source_index(
    name: str, *, client: Optional[AsyncElasticsearch] = None
) -> None:
    """
    Delete an index before it is recreated.

    Failures are logged and ignored: the following ensure_index call
    reports anything that actually prevents writing.
    """
    client = client or get_es_client()
    forget_target(name)
    try:
        await client.indices.delete(index=[name], ignore_unavailable=True)
        logger.info(f"Index deleted: {name}")
    except Exception as e:
        logger.warning(
            f"Error deleting index {name}, will continue and attempt to recreate it: {str(e)}"
        )


async def delete_all_by_index(
    index: Union[str, List[str]],
    *,
    refresh: bool = True,
    ignore_unavailable: bool = False,
    client: Optional[AsyncElasticsearch] = None,
):
    """Delete every document from one or more indices."""
    client = client or get_es_client()
    return await client.delete_by_query(
        index=index,
        refresh=refresh,
        ignore_unavailable=ignore_unavailable,
        query={"match_all": {}},
    )
