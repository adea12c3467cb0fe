"""
Storage layer for the mirroring crawler.
"""

from .mirror import MirrorStorage, MirrorEntry, url_to_local_path
from .visited import VisitedSet, MemoryVisitedSet, RedisVisitedSet, create_visited_set

__all__ = [
    'MirrorStorage', 'MirrorEntry', 'url_to_local_path',
    'VisitedSet', 'MemoryVisitedSet', 'RedisVisitedSet', 'create_visited_set'
]
