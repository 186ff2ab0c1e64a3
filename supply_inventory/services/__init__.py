from .normalization_service import NormalizationService
from .ledger_service import LedgerService
from .reconciliation_service import ReconciliationService
from .consumption_service import ConsumptionService
from .recommendation_service import RecommendationService
from .catalog_service import CatalogService

__all__ = [
    'NormalizationService',
    'LedgerService',
    'ReconciliationService',
    'ConsumptionService',
    'RecommendationService',
    'CatalogService'
]
