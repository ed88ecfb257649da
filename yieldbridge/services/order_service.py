"""Builds encoded cross-chain orders from API requests."""

from collections.abc import Callable, Mapping

import structlog
from eth_utils import is_address

from config import get_settings
from yieldbridge.services._helpers import now_ms
from yieldbridge.services._types import OrderPayloadDict, OrderResponseDict
from yieldbridge.services.errors import ValidationError
from yieldbridge.services.order_codec import encode_order_hex
from yieldbridge.services.schemas.orders import OrderRecord

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = (
    "sender",
    "recipient",
    "inputToken",
    "outputToken",
    "amountIn",
    "amountOut",
    "originDomain",
    "destinationDomain",
    "destinationSettler",
)
ADDRESS_FIELDS: tuple[str, ...] = ("sender", "recipient", "destinationSettler")
INTEGER_FIELDS: tuple[str, ...] = (
    "inputToken",
    "outputToken",
    "amountIn",
    "amountOut",
    "originDomain",
    "destinationDomain",
)


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def parse_uint(value: object) -> int | None:
    """Parse an int, a decimal string or a 0x-hex string. None if not a non-negative integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if not isinstance(value, str):
        return None
    raw: str = value.strip()
    try:
        parsed: int = int(raw, 16) if raw.lower().startswith("0x") else int(raw, 10)
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


class OrderService:
    """Validates order requests and returns the ABI-encoded order payload."""

    def __init__(
        self,
        clock: Callable[[], int] = now_ms,
        fill_window_seconds: int | None = None,
        order_data_type: str | None = None,
    ) -> None:
        settings = get_settings()
        self.clock: Callable[[], int] = clock
        self.fill_window_seconds: int = fill_window_seconds or settings.order.fill_window_seconds
        self.order_data_type: str = order_data_type or settings.order.data_type

    def validate(self, request: Mapping[str, object]) -> dict[str, int | str]:
        """Check presence, address shape and integer fields. Returns parsed values."""
        missing: list[str] = [f for f in REQUIRED_FIELDS if _is_blank(request.get(f))]
        if missing:
            raise ValidationError("Missing required fields", fields=missing)

        bad_addresses: list[str] = [
            f for f in ADDRESS_FIELDS
            if not isinstance(request[f], str) or not is_address(request[f])
        ]
        if bad_addresses:
            raise ValidationError("Invalid Ethereum address", fields=bad_addresses)

        parsed: dict[str, int | str] = {f: str(request[f]) for f in ADDRESS_FIELDS}
        bad_numbers: list[str] = []
        for f in INTEGER_FIELDS:
            value: int | None = parse_uint(request[f])
            if value is None:
                bad_numbers.append(f)
            else:
                parsed[f] = value
        if bad_numbers:
            raise ValidationError("Invalid numeric field", fields=bad_numbers)
        return parsed

    def build_order(self, request: Mapping[str, object]) -> OrderResponseDict:
        """Validate, stamp deadlines, and encode one order.

        fillDeadline is one fill window from now in unix seconds; senderNonce
        is the same instant in milliseconds.
        """
        values: dict[str, int | str] = self.validate(request)

        now: int = self.clock()
        fill_deadline: int = now // 1000 + self.fill_window_seconds
        sender_nonce: int = now + self.fill_window_seconds * 1000

        order: OrderRecord = OrderRecord(
            sender=str(values["sender"]),
            recipient=str(values["recipient"]),
            input_token=int(values["inputToken"]),
            output_token=int(values["outputToken"]),
            amount_in=int(values["amountIn"]),
            amount_out=int(values["amountOut"]),
            sender_nonce=sender_nonce,
            origin_domain=int(values["originDomain"]),
            destination_domain=int(values["destinationDomain"]),
            destination_settler=str(values["destinationSettler"]),
            fill_deadline=fill_deadline,
            data=b"",
        )
        encoded: str = encode_order_hex(order)

        logger.info(
            "Order encoded",
            origin_domain=order.origin_domain,
            destination_domain=order.destination_domain,
            fill_deadline=fill_deadline,
        )
        return OrderResponseDict(
            order=OrderPayloadDict(
                fillDeadline=str(fill_deadline),
                orderDataType=self.order_data_type,
                orderData=encoded,
            )
        )
