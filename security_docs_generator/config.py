import os
import json
import logging
from pathlib import Path
from functools import lru_cache
from typing import Optional, Dict, Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from security_docs_generator.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
DEFAULT_EVENT_INDEX = "logs-testlogs-default"


class ElasticNode(BaseModel):
    """Elasticsearch endpoint and the credentials used to reach it."""

    model_config = ConfigDict(populate_by_name=True)

    node: str = Field(..., min_length=1)
    api_key: Optional[str] = Field(None, alias="apiKey")
    username: Optional[str] = None
    password: Optional[str] = None

    @model_validator(mode="after")
    def check_credentials(self):
        if not self.api_key and not (self.username and self.password):
            raise ValueError("either apiKey or username and password must be set")
        return self


class Config(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    elastic: ElasticNode
    event_index: str = Field(DEFAULT_EVENT_INDEX, alias="eventIndex")
    event_date_offset_hours: Optional[int] = Field(None, alias="eventDateOffsetHours")


def default_config_path() -> Path:
    return Path(os.getenv("SECURITY_DOCS_CONFIG", CONFIG_FILE_NAME))


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Could not read {path}: {e}", {"path": str(path)}
        ) from e


def _config_from_env() -> Dict[str, Any]:
    """
    Collect configuration from environment variables.

    Credentials are only taken as a complete set: an API key, or a
    username and password pair, together with ELASTIC_NODE. A node
    without credentials is ignored so the file's node still applies.
    """
    env_config: Dict[str, Any] = {}

    node = os.getenv("ELASTIC_NODE")
    api_key = os.getenv("ELASTIC_API_KEY")
    username = os.getenv("ELASTIC_USERNAME")
    password = os.getenv("ELASTIC_PASSWORD")

    if node:
        if api_key:
            env_config["elastic"] = {"node": node, "apiKey": api_key}
        elif username and password:
            env_config["elastic"] = {
                "node": node,
                "username": username,
                "password": password,
            }

    event_index = os.getenv("EVENT_INDEX")
    if event_index:
        env_config["eventIndex"] = event_index

    offset = os.getenv("EVENT_DATE_OFFSET_HOURS")
    if offset is not None:
        try:
            env_config["eventDateOffsetHours"] = int(offset)
        except ValueError:
            logger.warning(f"Ignoring non-numeric EVENT_DATE_OFFSET_HOURS={offset!r}")

    return env_config


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from config.json and environment variables.

    Environment variables take precedence over the file. An elastic node
    from the environment replaces the file's node as a whole.

    Raises:
        ConfigurationError: when no valid endpoint and credential form is found
    """
    load_dotenv()

    path = config_path or default_config_path()
    merged = _read_config_file(path)
    merged.update(_config_from_env())

    if "elastic" not in merged:
        raise ConfigurationError(
            f"No Elasticsearch node configured. Set ELASTIC_NODE or add it to {path}",
            {"field": "elastic"},
        )

    try:
        return Config.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in environment variables or {path}: {e}",
            {"errors": e.errors()},
        ) from e


@lru_cache()
def get_config() -> Config:
    return load_config()
