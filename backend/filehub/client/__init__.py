"""Python client for the FileHub API with optimistic local state."""

from filehub.client.api import ApiError, FileHubClient
from filehub.client.optimistic import MutationType, OptimisticFileView, ViewState
from filehub.client.store import AppStore

__all__ = [
    "ApiError",
    "AppStore",
    "FileHubClient",
    "MutationType",
    "OptimisticFileView",
    "ViewState",
]
