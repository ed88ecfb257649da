"""Order data transfer objects."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OrderRecord:
    """Cross-chain transfer intent, in settlement-contract field order."""

    sender: str
    recipient: str
    input_token: int
    output_token: int
    amount_in: int
    amount_out: int
    sender_nonce: int
    origin_domain: int
    destination_domain: int
    destination_settler: str
    fill_deadline: int
    data: bytes = b""
