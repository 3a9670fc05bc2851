from __future__ import annotations

from typing import Any


class OrderError(ValueError):
    """Base class for rejected intents and malformed orders."""

    retryable = False


class PrecisionError(OrderError):
    def __init__(self, field: str, value: Any, digits: int, max_digits: int):
        self.field = field
        self.value = value
        self.digits = digits
        self.max_digits = max_digits
        super().__init__(
            f"invalid {field}: {value} has {digits} decimal places, max {max_digits} allowed"
        )


class TickAlignmentError(OrderError):
    def __init__(
        self,
        field: str,
        value: Any,
        step: str,
        floor: str | None,
        ceiling: str,
    ):
        self.field = field
        self.value = value
        self.step = step
        self.floor = floor
        self.ceiling = ceiling
        if floor is None:
            hint = f"Try {ceiling} (rounded up) instead."
        else:
            hint = f"Try {floor} (rounded down) or {ceiling} (rounded up) instead."
        super().__init__(
            f"invalid {field}: {value} is not a multiple of {step}. {hint}"
        )

    @property
    def suggestions(self) -> list[str]:
        if self.floor is None:
            return [self.ceiling]
        return [self.floor, self.ceiling]


class RangeError(OrderError):
    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"invalid {field}: {value} ({reason})")


class MalformedFieldError(OrderError):
    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"malformed {field}: {value!r} ({reason})")


class AddressMismatchError(OrderError):
    """Signing key does not control the order's declared signer. Never retry."""

    def __init__(self, signing_address: str, order_signer: str):
        self.signing_address = signing_address
        self.order_signer = order_signer
        super().__init__(
            f"signer address mismatch: signing with {signing_address}, "
            f"but order signer is {order_signer}"
        )


class VenueError(RuntimeError):
    pass


class RestError(RuntimeError):
    pass


class RestConnectionError(RestError):
    """The request got no HTTP response at all."""


class APIError(RestError):
    def __init__(
        self,
        message: str,
        status: int,
        data: Any = None,
        url: str | None = None,
        method: str | None = None,
    ):
        self.status = status
        self.data = data
        self.url = url
        self.method = method
        super().__init__(message)

    def is_auth_error(self) -> bool:
        return self.status in {401, 403}


class RateLimitError(APIError):
    pass


class AuthenticationError(APIError):
    pass


class APIValidationError(APIError):
    pass
