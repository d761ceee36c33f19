"""Concrete RemoteRepository implementations."""

from .mirror import MIRROR_API_URL, MirrorApi
from .official import MODIO_DRG_ID, MODIOAPIURLS, ModioApi

__all__ = ["ModioApi", "MirrorApi", "MODIOAPIURLS", "MODIO_DRG_ID", "MIRROR_API_URL"]
