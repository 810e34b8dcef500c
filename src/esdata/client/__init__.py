"""Elasticsearch client construction."""

from esdata.client.factory import client_params, create_client

__all__ = ["client_params", "create_client"]
