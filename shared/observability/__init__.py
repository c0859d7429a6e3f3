from .setup import setup_observability
from .metrics import (
    storefront_orders_placed_total,
    storefront_order_placement_duration_seconds,
    storefront_placement_step_failures_total,
    storefront_stock_conflicts_total,
    storefront_shipping_quote_failures_total
)
