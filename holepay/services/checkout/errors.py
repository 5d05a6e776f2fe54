"""Checkout error taxonomy.

Services raise these; only the HTTP layer decides status codes.
"""


class CheckoutError(Exception):
    """Base class for every checkout failure."""


class InvalidProductError(CheckoutError):
    """Requested product type is not in the catalog."""


class IntegrityError(CheckoutError):
    """Redirect parameters do not match what the ledger holds."""


class UnknownPurchaseError(IntegrityError):
    """No purchase record exists for the identifier."""


class OrderMismatchError(IntegrityError):
    """Redirect token differs from the stored processor order id."""


class GatewayError(CheckoutError):
    """Payment processor call failed or answered unexpectedly."""


class AuthError(GatewayError):
    pass


class RemoteOrderError(GatewayError):
    pass


class RemoteQueryError(GatewayError):
    pass


class RemoteCaptureError(GatewayError):
    pass


class GatewayResponseError(GatewayError):
    """Processor answered with success but the body lacks a required field."""


class LedgerError(CheckoutError):
    pass


class DuplicatePurchaseError(LedgerError):
    pass


class StaleRecordError(LedgerError):
    """Compare-and-swap lost against a concurrent update."""
