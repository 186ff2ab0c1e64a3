from .ledger import Delta, AbsoluteSet, effect_for, fold_effects, fold_movements
from .matching import (
    NormalizedItem, SupplyCandidate, calculate_similarity, extract_quantity,
    split_mentions, match_item, rank_suggestions,
    FUZZY_MATCH_THRESHOLD, MIN_CONFIDENCE
)
from .common_terms import load_common_terms
from .purchasing import calculate_purchase_recommendation, determine_priority, calculate_days_remaining
from .consumption import calculate_daily_average, classify_trend, cumulative_daily_average

__all__ = [
    'Delta',
    'AbsoluteSet',
    'effect_for',
    'fold_effects',
    'fold_movements',
    'NormalizedItem',
    'SupplyCandidate',
    'calculate_similarity',
    'extract_quantity',
    'split_mentions',
    'match_item',
    'rank_suggestions',
    'FUZZY_MATCH_THRESHOLD',
    'MIN_CONFIDENCE',
    'load_common_terms',
    'calculate_purchase_recommendation',
    'determine_priority',
    'calculate_days_remaining',
    'calculate_daily_average',
    'classify_trend',
    'cumulative_daily_average'
]
