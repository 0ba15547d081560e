"""Stock reservation against the products table.

Both operations are single conditional UPDATE statements; correctness under
concurrent requests (possibly from other processes) rests on the database,
not on any lock held here.
"""

import structlog
from sqlalchemy import update

from storefront.models import Product

logger = structlog.get_logger(component="inventory")


def reserve(session, product_id: int, quantity: int):
    """Take ``quantity`` units off the product's stock.

    Returns the refreshed product, or None if stock was below ``quantity``.
    """
    result = session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    session.commit()

    if result.rowcount != 1:
        logger.info("reservation_refused", product_id=product_id, quantity=quantity)
        return None

    product = session.get(Product, product_id, populate_existing=True)
    logger.info("stock_reserved", product_id=product_id, quantity=quantity, stock=product.stock)
    return product


def release(session, product_id: int, quantity: int) -> bool:
    """Put ``quantity`` units back. Returns False if the product is gone."""
    result = session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    session.commit()

    released = result.rowcount == 1
    logger.info("stock_released", product_id=product_id, quantity=quantity, released=released)
    return released
