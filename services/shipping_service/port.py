"""Carrier port: the interface order placement programs against.

The HTTP adapter lives in client.py; tests swap in an in-memory carrier.
"""

from abc import ABC, abstractmethod
from typing import List

from .schemas import PackageDimensions, ShipmentConfirmation, ShipmentRequest, ShippingOption


class CarrierPort(ABC):

    @abstractmethod
    async def quote(
        self,
        origin_postal_code: str,
        destination_postal_code: str,
        package: PackageDimensions,
    ) -> List[ShippingOption]:
        """Priced options for one package. An empty list means nothing can ship it.

        Raises DependencyError when the carrier cannot be reached.
        """
        ...

    @abstractmethod
    async def create_shipment(self, shipment: ShipmentRequest) -> ShipmentConfirmation:
        """Register a finalized shipment and return the carrier's identifiers."""
        ...
