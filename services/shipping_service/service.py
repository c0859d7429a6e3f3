from typing import List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from services.catalog_service.repository import ProductRepository
from shared.config.settings import STORE_ORIGIN_POSTAL_CODE
from shared.errors import DependencyError, NotFoundError
from .package import aggregate_package, estimate_package
from .port import CarrierPort
from .schemas import QuoteRequest, QuoteResponse, ShippingOption


def sort_by_price(options: Sequence[ShippingOption]) -> List[ShippingOption]:
    # sorted() is stable: equal prices keep the carrier's order
    return sorted(options, key=lambda o: o.price)


def cheapest_option(options: Sequence[ShippingOption]) -> ShippingOption:
    if not options:
        raise DependencyError("no shipping options")
    return sort_by_price(options)[0]


class ShippingService:

    @staticmethod
    async def quote_for_items(
        db: AsyncSession,
        data: QuoteRequest,
        carrier: CarrierPort,
        origin_postal_code: str = STORE_ORIGIN_POSTAL_CODE,
    ) -> QuoteResponse:
        """
        Stand-alone quote for a prospective cart. Uses the products' own
        measurements when all of them have one, otherwise the unit-count estimate.
        """
        lines = []
        for item in data.items:
            product = await ProductRepository.get_product_by_id(db, item.product_id)
            if not product:
                raise NotFoundError("product", item.product_id)
            lines.append((product, item.quantity))

        package = aggregate_package(lines)
        if package is None:
            package = estimate_package(sum(qty for _, qty in lines))

        options = await carrier.quote(origin_postal_code, data.destination_postal_code, package)
        if not options:
            raise DependencyError("no shipping options")
        return QuoteResponse(package=package, options=sort_by_price(options))
