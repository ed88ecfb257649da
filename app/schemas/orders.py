"""Order request/response schemas.

Request fields accept any JSON value and are all optional, so nothing is
coerced or rejected here. OrderService decides what is missing or malformed
and answers with a 400 naming the fields.
"""

from typing import Any

from app.schemas.common import CamelModel


class OrderRequest(CamelModel):
    sender: Any = None
    recipient: Any = None
    input_token: Any = None
    output_token: Any = None
    amount_in: Any = None
    amount_out: Any = None
    origin_domain: Any = None
    destination_domain: Any = None
    destination_settler: Any = None


class OrderPayload(CamelModel):
    fill_deadline: str
    order_data_type: str
    order_data: str


class OrderResponse(CamelModel):
    order: OrderPayload
