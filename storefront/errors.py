import httpx


class StorefrontError(Exception):
    """Base class for errors raised by the storefront controllers."""


class CartError(StorefrontError):
    pass


class InsufficientStock(CartError):
    def __init__(self, product_ref, requested: int, available: int):
        super().__init__("Insufficient stock")
        self.product_ref = product_ref
        self.requested = requested
        self.available = available


class InvalidQuantity(CartError):
    pass


class RemoteStoreError(StorefrontError):
    pass


class CartStoreError(RemoteStoreError):
    pass


class CatalogError(RemoteStoreError):
    pass


class CompletionError(StorefrontError):
    pass


class AuthError(StorefrontError):
    pass


class ProductValidationError(StorefrontError):
    pass


def describe_http_error(exc: Exception, fallback: str) -> str:
    """Readable detail for a failed remote call.

    Prefers the ``error`` field of a JSON error body, then the exception
    message. Non-HTTP failures (no response at all) get ``fallback``.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        detail = body.get("error") if isinstance(body, dict) else None
        return f"Backend error: {detail or exc}"
    if isinstance(exc, StorefrontError):
        return str(exc)
    return fallback
