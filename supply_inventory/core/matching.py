# supply_inventory/core/matching.py
import re
from collections import namedtuple
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

# Fuzzy candidates must reach this score to be considered a match at all
FUZZY_MATCH_THRESHOLD = 0.6
# Lowest confidence at which a fuzzy match is accepted for the ledger
MIN_CONFIDENCE = 0.5

COMMON_TERM_CONFIDENCE = 0.9
ALIAS_CONFIDENCE = 0.8

MATCH_COMMON_TERM = 'common_term'
MATCH_ALIAS = 'alias'
MATCH_FUZZY = 'fuzzy'

# Leading count; "X" and a space before the multiplier are accepted too ("3 X Jar")
_QUANTITY_PATTERN = re.compile(r'^(\d+)\s*[x×]\s*(.+)$', re.IGNORECASE)
_MENTION_SEPARATOR = re.compile(r'[,\n]')

SupplyCandidate = namedtuple('SupplyCandidate', ['id', 'name', 'unit'])


@dataclass
class NormalizedItem:
    """Result of resolving one free-text mention."""
    original_text: str
    name: str
    qty: float = 1
    supply_id: Optional[int] = None
    confidence: float = 0.0
    needs_mapping: bool = False
    match_source: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'supply_id': self.supply_id,
            'name': self.name,
            'original_text': self.original_text,
            'qty': self.qty,
            'confidence': self.confidence,
            'needs_mapping': self.needs_mapping,
            'match_source': self.match_source
        }


def unmapped(text: str, qty: float = 1) -> NormalizedItem:
    """A mention that could not be resolved and must go to a human."""
    return NormalizedItem(original_text=text, name=text, qty=qty, confidence=0.0, needs_mapping=True)


def calculate_similarity(first: str, second: str) -> float:
    """Normalized edit-distance similarity.

    Args:
        first: First string
        second: Second string

    Returns:
        1 - levenshtein(first, second) / max(len(first), len(second));
        1.0 for two empty strings, 0.0 when only one is empty
    """
    if not first:
        return 1.0 if not second else 0.0
    if not second:
        return 0.0

    distance = Levenshtein.distance(first, second)
    return 1.0 - (distance / max(len(first), len(second)))


def extract_quantity(text: str) -> Tuple[int, str]:
    """Split a leading multiplier off a mention.

    "3x Domestos" -> (3, "Domestos"); "5× Kávové kapsle" -> (5, "Kávové kapsle");
    anything else -> (1, text.strip()).
    """
    stripped = (text or '').strip()
    match = _QUANTITY_PATTERN.match(stripped)
    if match:
        return int(match.group(1)), match.group(2).strip()
    return 1, stripped


def split_mentions(note: str) -> List[str]:
    """Split a free-text note on commas and newlines, dropping blanks."""
    if not note:
        return []
    return [part.strip() for part in _MENTION_SEPARATOR.split(note) if part.strip()]


def _find_by_name(supplies: Sequence[SupplyCandidate], name: str) -> Optional[SupplyCandidate]:
    wanted = name.lower()
    for supply in supplies:
        if supply.name.lower() == wanted:
            return supply
    return None


def _find_by_id(supplies: Sequence[SupplyCandidate], supply_id) -> Optional[SupplyCandidate]:
    for supply in supplies:
        if supply.id == supply_id:
            return supply
    return None


def best_fuzzy_match(
    clean_text: str,
    supplies: Sequence[SupplyCandidate]
) -> Tuple[Optional[SupplyCandidate], float]:
    """Highest-scoring supply for a cleaned mention; ties keep catalog order."""
    best_supply = None
    best_score = 0.0

    for supply in supplies:
        score = calculate_similarity(clean_text, supply.name.lower())
        if best_supply is None or score > best_score:
            best_supply, best_score = supply, score

    return best_supply, best_score


def match_item(
    text: str,
    supplies: Sequence[SupplyCandidate],
    alias_map: Mapping[str, int],
    common_terms: Mapping[str, str],
    qty: float = 1,
    fuzzy_match_threshold: float = FUZZY_MATCH_THRESHOLD,
    min_confidence: float = MIN_CONFIDENCE
) -> NormalizedItem:
    """Resolve one mention against the tenant catalog.

    Order: common-terms dictionary, learned aliases, fuzzy name match.
    A dictionary or alias hit whose supply is not in the active catalog
    falls through to the next step.

    Args:
        text: Mention text (quantity already stripped off)
        supplies: Active supplies of the tenant
        alias_map: Lower-cased alias -> supply id
        common_terms: Lower-cased synonym -> canonical supply name
        qty: Quantity attached to the mention
        fuzzy_match_threshold: Minimum similarity for a fuzzy candidate
        min_confidence: Minimum similarity for accepting the fuzzy result

    Returns:
        NormalizedItem
    """
    clean = (text or '').strip().lower()
    if not clean:
        return unmapped(text or '', qty)

    canonical = common_terms.get(clean)
    if canonical:
        supply = _find_by_name(supplies, canonical)
        if supply:
            return NormalizedItem(
                original_text=text, name=supply.name, qty=qty, supply_id=supply.id,
                confidence=COMMON_TERM_CONFIDENCE, match_source=MATCH_COMMON_TERM
            )

    alias_supply_id = alias_map.get(clean)
    if alias_supply_id is not None:
        supply = _find_by_id(supplies, alias_supply_id)
        if supply:
            return NormalizedItem(
                original_text=text, name=supply.name, qty=qty, supply_id=supply.id,
                confidence=ALIAS_CONFIDENCE, match_source=MATCH_ALIAS
            )

    supply, score = best_fuzzy_match(clean, supplies)
    if supply is not None and score >= fuzzy_match_threshold and score >= min_confidence:
        return NormalizedItem(
            original_text=text, name=supply.name, qty=qty, supply_id=supply.id,
            confidence=score, match_source=MATCH_FUZZY
        )

    return unmapped(text, qty)


def rank_suggestions(
    text: str,
    supplies: Sequence[SupplyCandidate],
    limit: int = 3,
    min_score: float = 0.3
) -> List[Dict]:
    """Closest supplies for an unmapped mention, best first."""
    clean = (text or '').strip().lower()
    scored = [
        {'id': supply.id, 'name': supply.name, 'score': calculate_similarity(clean, supply.name.lower())}
        for supply in supplies
    ]
    scored = [s for s in scored if s['score'] >= min_score]
    scored.sort(key=lambda s: s['score'], reverse=True)
    return scored[:limit]
