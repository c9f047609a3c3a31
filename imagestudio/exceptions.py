"""
Domain exceptions for ImageStudio.

Services raise these; routes translate them into HTTP responses.
"""


class ImageStudioError(Exception):
    """Base class for all ImageStudio errors."""


class UpstreamError(ImageStudioError):
    """An external API (generation backend or payment processor) failed."""


class UpstreamConfigError(UpstreamError):
    """The upstream rejected our credentials, or none are configured."""


class UpstreamRateLimitError(UpstreamError):
    """The upstream answered 429."""


class UpstreamTimeoutError(UpstreamError):
    """The upstream did not answer within the configured timeout."""


class PaymentConfigError(ImageStudioError):
    """A Stripe secret key or webhook secret is missing."""


class InvalidWebhookError(ImageStudioError):
    """Webhook signature or payload could not be verified."""


class OrderNotFoundError(ImageStudioError):
    """A payment confirmation referenced an order we never created."""

    def __init__(self, order_number: str):
        super().__init__(f"Order not found: {order_number}")
        self.order_number = order_number


class OrderMismatchError(ImageStudioError):
    """Payment metadata disagrees with the stored order."""


class GenerationError(ImageStudioError):
    """
    Error returned to generation callers.

    Rendered as {"success": false, "error": message, "code": code}.
    """

    def __init__(self, status_code: int, message: str, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
