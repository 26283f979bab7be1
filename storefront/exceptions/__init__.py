"""Custom exceptions for the storefront application."""

class StorefrontError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(StorefrontError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(StorefrontError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_title, required, available):
        message = f"Insufficient stock for {product_title}: requested {int(required)}, available {int(available)}"
        super().__init__(message, status_code=409, payload={'requested': int(required), 'available': int(available)})

class CouponError(BusinessLogicError):
    """Raised when a coupon cannot be applied to the current cart."""
    def __init__(self, message, reason):
        super().__init__(message, status_code=400, payload={'reason': reason})
        self.reason = reason

class UnauthorizedError(StorefrontError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)
