"""Test index and data stream management."""
import logging
import pytest
from unittest.mock import AsyncMock, MagicMock

from elasticsearch import BadRequestError

from security_docs_generator.ingest.indices import (
    DEFAULT_TOTAL_FIELDS_LIMIT,
    delete_all_by_index,
    delete_data_stream_safe,
    delete_source_index,
    ensure_index,
    is_data_stream,
)
from tests.conftest import not_found

MAPPING = {"properties": {"host": {"properties": {"name": {"type": "keyword"}}}}}


class TestEnsureIndex:
    @pytest.mark.asyncio
    async def test_creates_missing_index_with_default_field_limit(self, es_client):
        await ensure_index("my-index", MAPPING, client=es_client)

        es_client.indices.exists.assert_awaited_once_with(index="my-index")
        es_client.indices.create.assert_awaited_once_with(
            index="my-index",
            mappings=MAPPING,
            settings={"index.mapping.total_fields.limit": DEFAULT_TOTAL_FIELDS_LIMIT},
        )

    @pytest.mark.asyncio
    async def test_second_call_is_a_no_op(self, es_client):
        await ensure_index("my-index", MAPPING, client=es_client)
        await ensure_index("my-index", MAPPING, client=es_client)

        assert es_client.indices.create.await_count == 1
        assert es_client.indices.exists.await_count == 1

    @pytest.mark.asyncio
    async def test_existing_index_is_not_created(self, es_client):
        es_client.indices.exists.return_value = True

        await ensure_index("my-index", MAPPING, client=es_client)

        es_client.indices.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_caller_settings_win_over_defaults(self, es_client):
        await ensure_index(
            "my-index",
            settings={"index.mapping.total_fields.limit": 50, "number_of_shards": 1},
            client=es_client,
        )

        settings = es_client.indices.create.call_args.kwargs["settings"]
        assert settings == {"index.mapping.total_fields.limit": 50, "number_of_shards": 1}

    @pytest.mark.asyncio
    async def test_data_stream_uses_data_stream_calls(self, es_client):
        await ensure_index("logs-testlogs-default", MAPPING, client=es_client)

        es_client.indices.get_data_stream.assert_awaited_once_with(name="logs-testlogs-default")
        es_client.indices.create_data_stream.assert_awaited_once_with(name="logs-testlogs-default")
        es_client.indices.exists.assert_not_awaited()
        es_client.indices.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existing_data_stream_is_not_created(self, es_client):
        es_client.indices.get_data_stream = AsyncMock(
            return_value={"data_streams": [{"name": "logs-x-default"}]}
        )

        await ensure_index("logs-x-default", client=es_client)

        es_client.indices.create_data_stream.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_creation_failure_is_logged_and_reraised(self, es_client, caplog):
        error = BadRequestError(
            "mapper_parsing_exception", MagicMock(status=400), {"error": "bad mapping"}
        )
        es_client.indices.create.side_effect = error

        with caplog.at_level(logging.ERROR):
            with pytest.raises(BadRequestError):
                await ensure_index("my-index", MAPPING, client=es_client)

        assert "creation failed for my-index" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_creation_is_retried_on_next_call(self, es_client):
        es_client.indices.create.side_effect = [RuntimeError("boom"), {"acknowledged": True}]

        with pytest.raises(RuntimeError):
            await ensure_index("my-index", client=es_client)
        await ensure_index("my-index", client=es_client)

        assert es_client.indices.create.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_name_is_rejected(self, es_client):
        with pytest.raises(ValueError):
            await ensure_index("", client=es_client)

    def test_is_data_stream(self):
        assert is_data_stream("logs-endpoint.events.process-default")
        assert is_data_stream("metrics-system.cpu-default")
        assert not is_data_stream(".alerts-security.alerts-default")
        assert not is_data_stream("my-index")


class TestDeletion:
    @pytest.mark.asyncio
    async def test_delete_missing_data_stream_is_ignored(self, es_client):
        es_client.indices.delete_data_stream.side_effect = not_found()

        await delete_data_stream_safe("logs-x-default", client=es_client)

    @pytest.mark.asyncio
    async def test_delete_data_stream_propagates_other_errors(self, es_client):
        es_client.indices.delete_data_stream.side_effect = RuntimeError("cluster down")

        with pytest.raises(RuntimeError):
            await delete_data_stream_safe("logs-x-default", client=es_client)

    @pytest.mark.asyncio
    async def test_deleted_target_is_checked_again(self, es_client):
        await ensure_index("my-index", client=es_client)
        await delete_source_index("my-index", client=es_client)
        await ensure_index("my-index", client=es_client)

        assert es_client.indices.exists.await_count == 2
        assert es_client.indices.create.await_count == 2

    @pytest.mark.asyncio
    async def test_delete_source_index_swallows_errors(self, es_client, caplog):
        es_client.indices.delete.side_effect = RuntimeError("nope")

        with caplog.at_level(logging.WARNING):
            await delete_source_index("my-index", client=es_client)

        es_client.indices.delete.assert_awaited_once_with(
            index=["my-index"], ignore_unavailable=True
        )
        assert "Error deleting index my-index" in caplog.text

    @pytest.mark.asyncio
    async def test_delete_all_by_index(self, es_client):
        response = await delete_all_by_index("my-index", client=es_client)

        assert response == {"deleted": 3}
        es_client.delete_by_query.assert_awaited_once_with(
            index="my-index",
            refresh=True,
            ignore_unavailable=False,
            query={"match_all": {}},
        )
