import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import ConflictError, NotFoundError
from shared.money import to_money
from .models import Product
from .repository import ProductRepository
from .schemas import ProductCreate, ProductUpdate

logger = structlog.get_logger(__name__)


class ProductService:

    @staticmethod
    async def create_product(db: AsyncSession, data: ProductCreate) -> Product:
        product = Product(
            name=data.name,
            price=to_money(data.price),
            stock=data.stock,
            weight=data.weight,
            height=data.height,
            width=data.width,
            length=data.length,
            description=data.description,
            image=data.image,
        )
        product = await ProductRepository.create_product(db, product)
        logger.info("product_created", product_id=product.id, stock=product.stock)
        return product

    @staticmethod
    async def list_products(db: AsyncSession):
        return await ProductRepository.get_all_products(db)

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise NotFoundError("product", product_id)
        return product

    @staticmethod
    async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate) -> Product:
        product = await ProductService.get_product_by_id(db, product_id)

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None and field in ("name", "price", "stock"):
                continue
            if field == "price":
                value = to_money(value)
            setattr(product, field, value)

        return await ProductRepository.update_product(db, product)

    @staticmethod
    async def delete_product(db: AsyncSession, product_id: int):
        product = await ProductService.get_product_by_id(db, product_id)

        # Historical orders keep pointing at the product row
        if await ProductRepository.is_referenced_by_orders(db, product_id):
            raise ConflictError(
                "product is referenced by existing orders",
                product_id=product_id,
            )
        await ProductRepository.delete_product(db, product)
        logger.info("product_deleted", product_id=product_id)
