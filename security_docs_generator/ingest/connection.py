import logging
from typing import Optional, Dict, Any

from elasticsearch import AsyncElasticsearch

from security_docs_generator.config import Config, get_config
from security_docs_generator.errors import ConfigurationError

logger = logging.getLogger(__name__)


def client_auth(config: Config) -> Dict[str, Any]:
    """
    Build the authentication keyword arguments for the client.

    Raises:
        ConfigurationError: when neither an API key nor a username and password are set
    """
    elastic = config.elastic
    if elastic.api_key:
        return {"api_key": elastic.api_key}
    if elastic.username and elastic.password:
        return {"basic_auth": (elastic.username, elastic.password)}
    raise ConfigurationError(
        "Elasticsearch credentials are missing", {"field": "elastic"}
    )


class ElasticsearchConnection:
    """Shared Elasticsearch connection for all ingestion helpers."""

    _instance = None
    _es_client: Optional[AsyncElasticsearch] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_client(self, config: Optional[Config] = None) -> AsyncElasticsearch:
        """Get or create the Elasticsearch client."""
        if self._es_client is None:
            self._es_client = self._connect_to_elasticsearch(config or get_config())
        return self._es_client

    def _connect_to_elasticsearch(self, config: Config) -> AsyncElasticsearch:
        """
        Create the Elasticsearch client from the loaded configuration.

        Returns:
            AsyncElasticsearch client instance
        """
        es_client = AsyncElasticsearch(
            config.elastic.node, request_timeout=120, **client_auth(config)
        )
        logger.info(f"Elasticsearch node: {config.elastic.node}")
        return es_client

    async def close(self) -> None:
        if self._es_client is not None:
            await self._es_client.close()
            self._es_client = None


def get_es_client() -> AsyncElasticsearch:
    return ElasticsearchConnection().get_client()
