# app/core/errors.py
from fastapi import status


class CheckoutError(Exception):
    """
    Base error for the checkout pipeline.
    The message is shown to the shopper verbatim, so keep it free of internals.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CheckoutError):
    pass


class InventoryError(CheckoutError):
    pass


class SignatureError(CheckoutError):
    pass


class GatewayError(CheckoutError):
    pass


class ConfigurationError(CheckoutError):
    pass


class AuthError(CheckoutError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
