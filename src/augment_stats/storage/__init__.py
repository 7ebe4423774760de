"""
Storage Module

JSON persistence for recorded games (live and PBE collections) and the
learned augment icon database.
"""

from .stats_store import StatsStore, open_store

__all__ = [
    'StatsStore',
    'open_store'
]
