# cartshare/services/exceptions.py


class ServiceError(Exception):
    """Base class for service-layer errors."""

    code = "service_error"
    status_code = 400

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class DomainValidationError(ServiceError):
    """Invalid domain input."""

    code = "validation_error"
    status_code = 422


class EmptyCartError(DomainValidationError):
    """Raised when a cart with no items is submitted for sharing."""

    code = "empty_cart"
    status_code = 400

    def __init__(self, detail: str = "Cart is empty"):
        super().__init__(detail)


class InvalidQuantityError(DomainValidationError):
    """Raised when a quantity is invalid (e.g., <= 0)."""

    code = "invalid_quantity"


class ResourceNotFoundError(ServiceError):
    code = "not_found"
    status_code = 404


class ConflictError(ServiceError):
    """State conflict for the requested operation."""

    code = "conflict"
    status_code = 409


class InvalidStatusTransitionError(ConflictError):
    code = "invalid_transition"


class ShortCodeExhaustedError(ServiceError):
    """Every short code candidate collided with an existing record."""

    code = "code_generation_failed"
    status_code = 500


class PersistenceError(ServiceError):
    """The record store rejected or failed the write."""

    code = "persistence_failed"
    status_code = 500
