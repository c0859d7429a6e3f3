from prometheus_client import Counter, Histogram

# Business Metrics
storefront_orders_placed_total = Counter(
    "storefront_orders_placed_total",
    "Order placement attempts",
    ["status"] # Labels: 'success', 'failed', 'degraded'
)

storefront_order_placement_duration_seconds = Histogram(
    "storefront_order_placement_duration_seconds",
    "End-to-end order placement duration in seconds"
)

storefront_placement_step_failures_total = Counter(
    "storefront_placement_step_failures_total",
    "Order placements aborted, by workflow step",
    ["step"] # Labels: 'resolve_products', 'quote_shipping', 'persist', ...
)

storefront_stock_conflicts_total = Counter(
    "storefront_stock_conflicts_total",
    "Orders rejected because stock was insufficient or lost a decrement race",
    ["phase"] # Labels: 'check', 'decrement'
)

storefront_shipping_quote_failures_total = Counter(
    "storefront_shipping_quote_failures_total",
    "Carrier quote calls that failed or returned no usable option"
)
