# supply_inventory/services/normalization_service.py
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from supply_inventory.config import config
from supply_inventory.core.common_terms import load_common_terms
from supply_inventory.core.matching import (
    NormalizedItem, SupplyCandidate, extract_quantity, match_item,
    rank_suggestions, split_mentions, unmapped
)
from supply_inventory.db import raise_if_unavailable
from supply_inventory.exceptions import NotFoundError, ValidationError
from supply_inventory.logging_setup import get_logger
from supply_inventory.models import Supply, SupplyAlias
from supply_inventory.utils.helpers import mask_id
from supply_inventory.utils.validation import require_identifiers

logger = get_logger('normalization')


class NormalizationService:
    """Service for resolving free-text supply mentions to catalog supplies."""

    def __init__(self, session: Session, common_terms=None):
        """Initialize the normalization service.

        Args:
            session: Database session
            common_terms: Optional synonym dictionary; defaults to the
                          configured locales of the packaged dictionary
        """
        self.session = session
        self.settings = config.inventory_config

        if common_terms is None:
            common_terms = load_common_terms(
                self.settings['common_terms_locales'],
                self.settings['common_terms_path']
            )
        self.common_terms = common_terms

    def _load_supplies(self, tenant_id: str) -> List[SupplyCandidate]:
        rows = self.session.query(Supply.id, Supply.name, Supply.unit).filter(
            Supply.tenant_id == tenant_id,
            Supply.is_active.is_(True)
        ).order_by(Supply.id).all()

        return [SupplyCandidate(row.id, row.name, row.unit) for row in rows]

    def _load_alias_map(self, tenant_id: str) -> Dict[str, int]:
        try:
            rows = self.session.query(SupplyAlias.alias, SupplyAlias.supply_id).filter(
                SupplyAlias.tenant_id == tenant_id
            ).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error fetching aliases for tenant {mask_id(tenant_id)}: {str(e)}")
            return {}

        return {row.alias.lower(): row.supply_id for row in rows}

    def normalize_mentions(
        self,
        mentions: Sequence[Tuple[str, float]],
        tenant_id: str
    ) -> List[NormalizedItem]:
        """Normalize (text, qty) mentions for a tenant.

        A catalog read failure of any kind degrades every mention to
        needs_mapping rather than failing the call.
        """
        try:
            supplies = self._load_supplies(tenant_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error fetching supplies for tenant {mask_id(tenant_id)}: {str(e)}")
            return [unmapped(text, qty) for text, qty in mentions]

        alias_map = self._load_alias_map(tenant_id)

        items = [
            match_item(
                text,
                supplies,
                alias_map,
                self.common_terms,
                qty=qty,
                fuzzy_match_threshold=self.settings['fuzzy_match_threshold'],
                min_confidence=self.settings['min_confidence']
            )
            for text, qty in mentions
        ]

        logger.info(
            f"Items normalized: input={len(mentions)} "
            f"needs_mapping={sum(1 for item in items if item.needs_mapping)} "
            f"tenant={mask_id(tenant_id)}"
        )

        return items

    def normalize_items(self, text_items: Iterable[str], tenant_id: str) -> List[NormalizedItem]:
        """Normalize a pre-split list of mentions.

        Args:
            text_items: Free-text mentions, one item each
            tenant_id: Tenant ID

        Returns:
            One NormalizedItem per mention, in input order
        """
        return self.normalize_mentions([(text, 1) for text in text_items], tenant_id)

    def normalize_text(self, text: str, tenant_id: str) -> List[NormalizedItem]:
        """Normalize a free-text blob such as "3x Domestos, kapsle".

        The blob is split on commas and newlines and a leading multiplier
        is taken off each part as its quantity.
        """
        mentions = []
        for part in split_mentions(text):
            qty, name = extract_quantity(part)
            mentions.append((name, qty))

        return self.normalize_mentions(mentions, tenant_id)

    def create_supply_alias(self, tenant_id: str, supply_id: int, alias: str) -> Dict:
        """Create a learned alias for better future matching.

        Args:
            tenant_id: Tenant ID
            supply_id: Supply the alias resolves to
            alias: Free-text alias

        Returns:
            Dictionary with success flag, the alias (if created) and error message (if not)
        """
        try:
            require_identifiers(tenant_id=tenant_id, supply_id=supply_id, alias=alias)

            supply = self.session.query(Supply).filter(
                Supply.id == supply_id,
                Supply.tenant_id == tenant_id
            ).first()
            if not supply:
                raise NotFoundError(f"Supply {supply_id} not found")

            record = SupplyAlias(tenant_id=tenant_id, supply_id=supply.id, alias=alias.strip().lower())
            self.session.add(record)
            self.session.commit()

        except (ValidationError, NotFoundError) as e:
            return {'success': False, 'alias': None, 'error': e.message}
        except IntegrityError:
            self.session.rollback()
            return {'success': False, 'alias': None, 'error': f'Alias "{alias.strip().lower()}" already exists'}
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error creating supply alias: {str(e)}")
            return {'success': False, 'alias': None, 'error': f"Failed to create alias: {str(e)}"}

        logger.info(f"Supply alias created: supply={mask_id(supply_id)} tenant={mask_id(tenant_id)}")

        return {
            'success': True,
            'alias': {'id': record.id, 'supply_id': record.supply_id, 'alias': record.alias},
            'error': None
        }

    def get_mapping_suggestions(
        self,
        tenant_id: str,
        unmapped_items: Iterable[str],
        limit: int = 3,
        min_score: Optional[float] = None
    ) -> List[Dict]:
        """Suggest supplies for items a human has to map.

        Returns:
            List of {'item', 'suggestions'} in input order; empty on store errors
        """
        if min_score is None:
            min_score = self.settings['suggestion_min_score']

        try:
            supplies = self._load_supplies(tenant_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise_if_unavailable(e)
            logger.error(f"Error fetching supplies for suggestions: {str(e)}")
            return []

        return [
            {'item': item, 'suggestions': rank_suggestions(item, supplies, limit=limit, min_score=min_score)}
            for item in unmapped_items
        ]
