"""Engine components orchestrating search → dedup → normalize → upload."""

from .dedup import Deduplicator
from .enumerator import EnumerationStats, Enumerator, Outcome
from .keys import KeySpace
from .normalizer import NormalizedRecord, Normalizer
from .search_client import SearchBackend, SearchClient, SearchPage
from .state import RunState, StateStore
from .upload_queue import UploadQueue, UploadStats

__all__ = [
    "Deduplicator",
    "EnumerationStats",
    "Enumerator",
    "KeySpace",
    "NormalizedRecord",
    "Normalizer",
    "Outcome",
    "RunState",
    "SearchBackend",
    "SearchClient",
    "SearchPage",
    "StateStore",
    "UploadQueue",
    "UploadStats",
]
