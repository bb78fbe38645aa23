"""Clients for external collaborators."""

from .api_client import RemoteApiClient, build_http_client

__all__ = ["RemoteApiClient", "build_http_client"]
