from bandsheets.client.api import BandSheetsClient
from bandsheets.client.coordinator import CoordinatorState, ImportCoordinator

__all__ = ["BandSheetsClient", "CoordinatorState", "ImportCoordinator"]
