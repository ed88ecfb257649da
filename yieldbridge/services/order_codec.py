"""ABI encoding of cross-chain orders for the settlement contract.

The wire form is the standard Solidity ABI encoding of twelve positional
values, no field names:

    address sender
    address recipient
    uint256 inputToken
    uint256 outputToken
    uint256 amountIn
    uint256 amountOut
    uint256 senderNonce
    uint256 originDomain
    uint256 destinationDomain
    address destinationSettler
    uint256 fillDeadline
    bytes   data

Every value is checked before encoding starts, so a bad order raises
SchemaViolation and never yields partial output.
"""

import secrets
from dataclasses import fields

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import is_address, to_checksum_address

from yieldbridge.services.errors import SchemaViolation
from yieldbridge.services.schemas.orders import OrderRecord

ORDER_ABI_TYPES: tuple[str, ...] = (
    "address",
    "address",
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "address",
    "uint256",
    "bytes",
)

UINT256_MAX: int = 2**256 - 1
WORD_SIZE: int = 32


def _check_address(name: str, value: object) -> str:
    if not isinstance(value, str) or not is_address(value):
        raise SchemaViolation(f"{name} is not a 20-byte hex address", fields=[name])
    return to_checksum_address(value)


def _check_uint256(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaViolation(f"{name} must be an integer", fields=[name])
    if value < 0 or value > UINT256_MAX:
        raise SchemaViolation(f"{name} is outside the uint256 range", fields=[name])
    return value


def _check_bytes(name: str, value: object) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise SchemaViolation(f"{name} must be bytes", fields=[name])
    return bytes(value)


_CHECKS = {
    "address": _check_address,
    "uint256": _check_uint256,
    "bytes": _check_bytes,
}


def _order_values(order: OrderRecord) -> list[object]:
    """Field values in wire order, each checked against its ABI slot."""
    values: list[object] = []
    for f, abi_type in zip(fields(order), ORDER_ABI_TYPES, strict=True):
        values.append(_CHECKS[abi_type](f.name, getattr(order, f.name)))
    return values


def encode_order(order: OrderRecord) -> bytes:
    """Encode an order into its canonical ABI byte string."""
    values: list[object] = _order_values(order)
    try:
        return encode(list(ORDER_ABI_TYPES), values)
    except EncodingError as e:
        raise SchemaViolation(f"order does not fit the ABI schema: {e}") from e


def encode_order_hex(order: OrderRecord) -> str:
    return "0x" + encode_order(order).hex()


def encoded_length(data_len: int) -> int:
    """Expected encoded size for an order whose trailing bytes field is data_len long."""
    head: int = len(ORDER_ABI_TYPES) * WORD_SIZE
    tail: int = WORD_SIZE + -(-data_len // WORD_SIZE) * WORD_SIZE
    return head + tail


def generate_identifier() -> str:
    """Random 32-byte identifier as 0x-prefixed hex, drawn from the OS CSPRNG."""
    return "0x" + secrets.token_bytes(32).hex()
