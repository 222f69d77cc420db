from .validation import (
    Rule, as_number, as_text, body, is_boolean, is_int, is_numeric, is_positive,
    is_positive_int, not_empty, param, to_bool,
)

# ---- Field chains ----
PRODUCT_ID = param(
    "id",
    Rule(is_int, "Invalid ID"),
    Rule(is_positive_int, "Invalid ID"),
    sanitize=int,
)

NAME = body(
    "name",
    Rule(not_empty, "Product name cannot be empty"),
    sanitize=as_text,
)

PRICE = body(
    "price",
    Rule(is_numeric, "Invalid value"),
    Rule(not_empty, "Product price cannot be empty"),
    Rule(is_positive, "Invalid price"),
    sanitize=as_number,
)

AVAILABILITY = body(
    "availability",
    Rule(is_boolean, "Invalid availability value"),
    sanitize=to_bool,
)

# ---- Per-endpoint rule sets ----
BY_ID = (PRODUCT_ID,)
CREATE = (NAME, PRICE)
UPDATE = (PRODUCT_ID, NAME, PRICE, AVAILABILITY)
