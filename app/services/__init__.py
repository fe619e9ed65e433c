"""Services package: expose all concrete services from one import."""
from .filter_service import (
    ValidationError, normalize_filters, parse_query_args, effective_date_range,
)
from .history_service import RecentlyShownTracker
from .selection_service import CandidateSelector, NotFoundError
from .recommendation_service import RecommendationComposer

__all__ = [
    'ValidationError',
    'normalize_filters',
    'parse_query_args',
    'effective_date_range',
    'RecentlyShownTracker',
    'CandidateSelector',
    'NotFoundError',
    'RecommendationComposer',
]
