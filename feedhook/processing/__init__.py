"""
Feedhook Processing Module
==========================

Entry model and the dispatch pipeline the host calls for every new entry.
"""

from .entry import EntryView, FeedEntry, FeedInfo, Thumbnail
from .pipeline import EntryDispatchPipeline, DispatchResult, DispatchState

__all__ = [
    'EntryView',
    'FeedEntry',
    'FeedInfo',
    'Thumbnail',
    'EntryDispatchPipeline',
    'DispatchResult',
    'DispatchState',
]
