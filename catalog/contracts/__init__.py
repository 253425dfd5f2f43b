"""
Catalog Contracts Package

All data contracts shared between layers.
Layers import types from here and never from each other's implementations.
"""

from .base import ErrorKind, Error, Result, Timestamp, TimeRange
from .items import (
    MediaKind, Category, Language, AgeRating,
    User, RatingEvent, CatalogItem, ItemDraft, DraftState
)
from .events import AuditEventType, AuditLogEntry, MetricPoint
from .ports import (
    RemoteCollectionStore, IdentityProvider, StaticIdentityProvider, ImageLookup
)

__all__ = [
    'ErrorKind', 'Error', 'Result', 'Timestamp', 'TimeRange',
    'MediaKind', 'Category', 'Language', 'AgeRating',
    'User', 'RatingEvent', 'CatalogItem', 'ItemDraft', 'DraftState',
    'AuditEventType', 'AuditLogEntry', 'MetricPoint',
    'RemoteCollectionStore', 'IdentityProvider', 'StaticIdentityProvider', 'ImageLookup',
]
