from .catalog_client import CatalogClient
from .inventory_client import InventoryClient
from .reconciliations_client import ReconciliationsClient

__all__ = [
    "CatalogClient",
    "InventoryClient",
    "ReconciliationsClient",
]
