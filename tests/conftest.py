"""Shared fixtures: a mocked AsyncElasticsearch client."""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from elasticsearch import NotFoundError

from security_docs_generator.ingest import indices


def not_found(message: str = "not found") -> NotFoundError:
    return NotFoundError(message, MagicMock(status=404), {"error": message})


def bulk_items(operations, statuses=None):
    """Build a bulk response for an alternating operations list.

    statuses maps a position within the request to an HTTP status; every
    other item succeeds with 201.
    """
    statuses = statuses or {}
    items = []
    for position, header in enumerate(operations[0::2]):
        action = next(iter(header))
        status = statuses.get(position, 201)
        result = {"_index": header[action].get("_index", "test"), "status": status}
        if status >= 300:
            result["error"] = {"type": "mapper_parsing_exception", "reason": "bad field"}
        items.append({action: result})
    return {
        "took": 1,
        "errors": any(s >= 300 for s in statuses.values()),
        "items": items,
    }


@pytest.fixture
def es_client():
    client = MagicMock()

    async def bulk(**kwargs):
        return bulk_items(kwargs["operations"])

    client.bulk = AsyncMock(side_effect=bulk)
    client.indices.exists = AsyncMock(return_value=False)
    client.indices.create = AsyncMock(return_value={"acknowledged": True})
    client.indices.get_data_stream = AsyncMock(side_effect=not_found())
    client.indices.create_data_stream = AsyncMock(return_value={"acknowledged": True})
    client.indices.delete_data_stream = AsyncMock(return_value={"acknowledged": True})
    client.indices.delete = AsyncMock(return_value={"acknowledged": True})
    client.delete_by_query = AsyncMock(return_value={"deleted": 3})
    return client


@pytest.fixture(autouse=True)
def forget_known_targets():
    indices.reset_known_targets()
    yield
    indices.reset_known_targets()


def sent_documents(client):
    """Documents sent by every bulk call of a mocked client, per call."""
    return [call.kwargs["operations"][1::2] for call in client.bulk.call_args_list]


def track_in_flight(client, delay=0.02):
    """Make bulk calls slow and record how many run at the same time."""
    stats = {"in_flight": 0, "peak": 0, "calls": 0}

    async def bulk(**kwargs):
        stats["in_flight"] += 1
        stats["calls"] += 1
        stats["peak"] = max(stats["peak"], stats["in_flight"])
        try:
            await asyncio.sleep(delay)
            return bulk_items(kwargs["operations"])
        finally:
            stats["in_flight"] -= 1

    client.bulk.side_effect = bulk
    return stats
