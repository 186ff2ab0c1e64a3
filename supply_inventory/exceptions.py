class InventoryError(Exception):
    """Base exception for Supply Inventory Engine errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Supply Inventory Engine"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(InventoryError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class ValidationError(InventoryError):
    """Exception raised for malformed input to a write operation."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class NotFoundError(InventoryError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code, details)


class PersistenceError(InventoryError):
    """Exception raised when the store rejects a read or write."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Persistence error"
        super().__init__(message, code, details)


class ConcurrentModificationError(PersistenceError):
    """Exception raised when an inventory record changed under a writer."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Inventory record was modified concurrently"
        super().__init__(message, code or 'CONCURRENT_MODIFICATION', details)


class StoreUnavailableError(PersistenceError):
    """Exception raised when the store cannot be reached.

    This is the only category allowed to propagate out of a public
    entry point; the caller's transport layer decides whether to retry.
    """

    def __init__(self, message=None, code=None, details=None):
        message = message or "Store unavailable"
        super().__init__(message, code or 'STORE_UNAVAILABLE', details)


class CalculationError(InventoryError):
    """Exception raised for calculation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Calculation error"
        super().__init__(message, code, details)


class UnresolvedItemWarning(InventoryError):
    """A free-text mention that could not be matched to a supply.

    Never raised across a public boundary. Instances are used to build the
    per-item messages returned alongside partial batch results.
    """

    def __init__(self, item_name, details=None):
        self.item_name = item_name
        super().__init__(f'Item "{item_name}" needs mapping to supply', 'NEEDS_MAPPING', details)
