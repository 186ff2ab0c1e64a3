# supply_inventory/core/common_terms.py
import json
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

from ..exceptions import ConfigError

PACKAGED_TERMS_PATH = Path(__file__).resolve().parent.parent / 'data' / 'common_terms.json'

def _read_terms_file(path: Path) -> dict:
    try:
        with open(path, encoding='utf-8') as handle:
            data = json.load(handle)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read common terms from {path}: {str(e)}")

    if not isinstance(data, dict):
        raise ConfigError(f"Common terms file {path} must map locales to term dictionaries")

    return data

@lru_cache(maxsize=None)
def _load(path: str, locales: Tuple[str, ...]) -> Mapping[str, str]:
    data = _read_terms_file(Path(path))

    merged = {}
    for locale in locales:
        terms = data.get(locale)
        if terms is None:
            raise ConfigError(f"Locale '{locale}' not found in common terms file {path}")
        for term, canonical in terms.items():
            merged[term.strip().lower()] = canonical

    return MappingProxyType(merged)

def load_common_terms(
    locales: Sequence[str] = ('cs',),
    path: Optional[str] = None
) -> Mapping[str, str]:
    """Load the common-terms dictionary (synonym → canonical supply name).

    The result is read-only and cached per (path, locales), so the file is
    parsed once per process.

    Args:
        locales: Locales to merge, later locales win on conflicting keys
        path: Optional override file; defaults to the packaged dictionary

    Returns:
        Immutable mapping of lower-cased term to canonical supply name
    """
    return _load(str(path or PACKAGED_TERMS_PATH), tuple(locales))
