from decimal import Decimal

# pricing policy
TAX_RATE = Decimal("0.08")
SHIPPING_FEE = Decimal("0")

# referral attribution window, ms
ATTRIBUTION_WINDOW_MS = 24 * 60 * 60 * 1000

# per-visitor storage keys (same names the storefront used in browser storage)
CART_KEY = "cart"
REFERRAL_KEY = "referralAgentId"
LAST_ORDER_KEY = "lastOrder"

PAYMENT_CARD = "card"
PAYMENT_UPI = "upi"
PAYMENT_METHODS = {
    PAYMENT_CARD: "Card",
    PAYMENT_UPI: "UPI",
}

RELATED_PRODUCTS_LIMIT = 8
