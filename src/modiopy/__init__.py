"""
modiopy package initializer.

This file exposes the high-level public API for the package:
 - ModioProvider (resolution, downloads, incremental updates)
 - ProviderCaches / ProviderCache (serializable provider memo)
 - FileBlobStore (local payload storage)
 - ModioApi / MirrorApi (backends)
 - exceptions (module with custom exceptions)

Implementation notes:
 - Importing the package registers the "modio" and "swissdev" provider factories.
 - Avoid heavy work at import time.
"""

__version__ = "0.1.0"

from .exceptions import *  # noqa: F401,F403
from . import exceptions

from .backends import MirrorApi, ModioApi
from .blobs import BlobReference, BlobStore, FileBlobStore
from .cache import ProviderCache, ProviderCaches
from .capability import RemoteRepository
from .download import ProgressChannel, render_progress
from .provider import MODIO_PROVIDER_ID, ModioProvider
from .reference import Reference, ReferenceCodec, format_reference, parse_reference
from .registry import ProviderFactory, ProviderParameter, factories, find_factories, get_factory
from .tags import process_tags
from .types_models import (
    ApprovalStatus,
    FetchComplete,
    FetchProgress,
    ModEntry,
    ModFile,
    ModInfo,
    ModioTags,
    ModSummary,
    Redirect,
    RemoteFile,
    RequiredStatus,
    Resolved,
)
from .utils import logger_setup

__all__ = [
    "__version__",
    "exceptions",
    "ModioProvider",
    "MODIO_PROVIDER_ID",
    "ProviderCache",
    "ProviderCaches",
    "BlobReference",
    "BlobStore",
    "FileBlobStore",
    "RemoteRepository",
    "ModioApi",
    "MirrorApi",
    "ProgressChannel",
    "render_progress",
    "Reference",
    "ReferenceCodec",
    "parse_reference",
    "format_reference",
    "ProviderFactory",
    "ProviderParameter",
    "factories",
    "find_factories",
    "get_factory",
    "process_tags",
    "ApprovalStatus",
    "RequiredStatus",
    "FetchComplete",
    "FetchProgress",
    "ModEntry",
    "ModFile",
    "ModInfo",
    "ModioTags",
    "ModSummary",
    "Redirect",
    "RemoteFile",
    "Resolved",
    "logger_setup",
]
