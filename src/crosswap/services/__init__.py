"""Token discovery services."""

from crosswap.services.token_aggregation import ScoredToken, TokenAggregationService
from crosswap.services.token_enrichment import EnrichedToken, TokenEnrichmentService

__all__ = [
    "ScoredToken",
    "TokenAggregationService",
    "EnrichedToken",
    "TokenEnrichmentService",
]
