"""
Custom exceptions for FastCheckout
Provides structured error handling across all packages
"""
from typing import Any, Dict, List, Optional


class FastCheckoutError(Exception):
    """Base exception for all FastCheckout errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Any] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the error member of the response envelope"""
        error = {"code": self.error_code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class ValidationError(FastCheckoutError):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if errors:
            details["errors"] = errors
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details or None,
            status_code=400,
        )


class MissingTenantError(FastCheckoutError):
    """Raised when the tenant header is absent"""

    def __init__(self, header: str = "X-Tenant-ID"):
        super().__init__(
            message=f"{header} header is required",
            error_code="MISSING_TENANT_ID",
            status_code=400,
        )


class InvalidTenantError(FastCheckoutError):
    """Raised when the tenant header is not a UUID"""

    def __init__(self, header: str = "X-Tenant-ID"):
        super().__init__(
            message=f"{header} must be a valid UUID",
            error_code="INVALID_TENANT_ID",
            status_code=400,
        )


class AuthenticationError(FastCheckoutError):
    """Raised when the static API key check fails"""

    def __init__(self, message: str = "Invalid or missing API key"):
        super().__init__(message=message, error_code="INVALID_API_KEY", status_code=401)


class CSRFError(FastCheckoutError):
    """Raised when the CSRF header does not match the CSRF cookie"""

    def __init__(self, message: str = "CSRF token validation failed"):
        super().__init__(message=message, error_code="CSRF_VALIDATION_FAILED", status_code=403)


class NotFoundError(FastCheckoutError):
    """Raised when a resource is not found"""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": str(identifier)},
            status_code=404,
        )


class RateLimitError(FastCheckoutError):
    """Raised when an identifier exceeds its request window"""

    def __init__(self, retry_after: int):
        super().__init__(
            message="Too many requests, please try again later",
            error_code="RATE_LIMIT_EXCEEDED",
            status_code=429,
        )
        self.retry_after = retry_after


class ProviderNotEnabledError(FastCheckoutError):
    """Raised when a payment processor is disabled for a tenant"""

    PROVIDER_NAMES = {"stripe": "Stripe", "paypal": "PayPal"}

    def __init__(self, provider: str):
        display_name = self.PROVIDER_NAMES.get(provider, provider)
        super().__init__(
            message=f"{display_name} is not enabled for this tenant",
            error_code=f"{provider.upper()}_NOT_ENABLED",
            status_code=400,
        )
        self.provider = provider


class ExternalAPIError(FastCheckoutError):
    """Raised when an external API call fails"""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        error_code: str = "EXTERNAL_API_ERROR",
        **details,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details={"provider": provider, "api_status_code": status_code, **details},
            status_code=502,
        )
        self.provider = provider
        self.api_status_code = status_code


class CoreAPIError(ExternalAPIError):
    """Raised when the Core API rejects or fails a request"""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(
            provider="linkbay",
            message=f"LinkBay API Error: {message}",
            status_code=status_code,
            error_code="CORE_API_ERROR",
            upstream_code=code,
        )


class TransientCoreAPIError(CoreAPIError):
    """Core API failure that is worth retrying (5xx)"""


class PaymentProviderError(FastCheckoutError):
    """Raised when Stripe or PayPal rejects an operation"""

    def __init__(self, provider: str, message: str, status_code: int = 400, **details):
        super().__init__(
            message=message,
            error_code=f"{provider.upper()}_ERROR",
            details=details or None,
            status_code=status_code,
        )
        self.provider = provider


class WebhookError(FastCheckoutError):
    """Raised when an incoming webhook cannot be processed"""

    def __init__(self, message: str, error_code: str = "WEBHOOK_ERROR", status_code: int = 400):
        super().__init__(message=message, error_code=error_code, status_code=status_code)


class ConfigurationError(FastCheckoutError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, setting: Optional[str] = None, error_code: str = "CONFIGURATION_ERROR"):
        super().__init__(
            message=message,
            error_code=error_code,
            details={"setting": setting} if setting else None,
            status_code=500,
        )


class CheckoutError(FastCheckoutError):
    """Raised when a checkout session operation is invalid"""

    def __init__(self, message: str, **details):
        super().__init__(
            message=message,
            error_code="CHECKOUT_ERROR",
            details=details or None,
            status_code=400,
        )


class CheckoutValidationError(FastCheckoutError):
    """Raised when plugin validation rejects a checkout"""

    def __init__(self, errors: List[str]):
        super().__init__(
            message="Checkout validation failed",
            error_code="VALIDATION_FAILED",
            details={"errors": list(errors)},
            status_code=400,
        )
        self.errors = list(errors)


class PluginExecutionError(FastCheckoutError):
    """Raised by the plugin manager when the error policy is 'abort'"""

    def __init__(self, plugin_name: str, hook: str, cause: BaseException):
        super().__init__(
            message=f"Plugin {plugin_name} failed in {hook}: {cause}",
            error_code="PLUGIN_ERROR",
            details={"plugin": plugin_name, "hook": hook},
            status_code=500,
        )
        self.plugin_name = plugin_name
        self.hook = hook
        self.cause = cause
