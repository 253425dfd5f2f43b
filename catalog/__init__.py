"""
Catalog Rating Core

Rating intake, consensus scoring and live projections over a shared,
push-synced catalog of movies and series.

LAYERS:
=======
1. contracts    - immutable data, error taxonomy, collaborator ports
2. ratings      - rating submission validation (pure)
3. aggregation  - consensus score (pure)
4. sync         - snapshot reconciliation and best-effort decoration
5. query        - filtered, sorted, paginated projections (pure)
6. writes       - validated mutations delegated to the store
7. observability- audit log and metrics for all of the above
"""

from .aggregation import compute_score, compute_raw_score, latest_rating_by
from .config import CatalogConfig
from .contracts import (
    ErrorKind, Error, Result,
    MediaKind, Category, Language, AgeRating,
    User, RatingEvent, CatalogItem, ItemDraft, DraftState,
    StaticIdentityProvider,
)
from .engine import CatalogService
from .query import ProjectionOptions, Projection, SortBy, ViewProjector
from .ratings import RatingEventCodec
from .storage import InMemoryCollectionStore
from .sync import CollectionSync
from .writes import WriteCoordinator

__version__ = "0.1.0"

__all__ = [
    'CatalogService', 'CatalogConfig',
    'CollectionSync', 'ViewProjector', 'WriteCoordinator', 'RatingEventCodec',
    'ProjectionOptions', 'Projection', 'SortBy',
    'compute_score', 'compute_raw_score', 'latest_rating_by',
    'ErrorKind', 'Error', 'Result',
    'MediaKind', 'Category', 'Language', 'AgeRating',
    'User', 'RatingEvent', 'CatalogItem', 'ItemDraft', 'DraftState',
    'StaticIdentityProvider', 'InMemoryCollectionStore',
]
