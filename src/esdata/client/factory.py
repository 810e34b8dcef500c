"""Client factory — Builds the Elasticsearch client from settings."""

from __future__ import annotations

import logging
from typing import Any

from elasticsearch import Elasticsearch

from esdata.config.settings import ElasticsearchSettings

logger = logging.getLogger(__name__)


def client_params(settings: ElasticsearchSettings) -> dict[str, Any]:
    """Keyword arguments for ``Elasticsearch``; unset options are left out."""

    def _add_if_not_none(key: str, value: Any) -> dict[str, Any]:
        return {key: value} if value is not None else {}

    basic_auth = (settings.username, settings.password) if settings.username and settings.password else None
    params: dict[str, Any] = {
        **_add_if_not_none("cloud_id", settings.cloud_id),
        **_add_if_not_none("api_key", settings.api_key),
        **_add_if_not_none("basic_auth", basic_auth),
        **_add_if_not_none("bearer_auth", settings.bearer_auth),
        **_add_if_not_none("verify_certs", settings.verify_certs),
        **_add_if_not_none("ca_certs", settings.ca_certs),
        **_add_if_not_none("request_timeout", settings.request_timeout),
        **_add_if_not_none("max_retries", settings.max_retries),
        **_add_if_not_none("retry_on_timeout", settings.retry_on_timeout),
    }
    # cloud_id and hosts are mutually exclusive
    if settings.cloud_id is None:
        params["hosts"] = list(settings.hosts)
    params.update(settings.extra)
    return params


def create_client(settings: ElasticsearchSettings | None = None) -> Elasticsearch:
    """Create an ``Elasticsearch`` client. The connection is opened lazily."""
    settings = settings or ElasticsearchSettings()
    params = client_params(settings)
    logger.info("Creating Elasticsearch client for %s", params.get("hosts") or "cloud deployment")
    return Elasticsearch(**params)
