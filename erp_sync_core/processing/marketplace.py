"""
Marketplace (sales channel) detection for external orders.
"""

import re
from typing import Optional

from ..schemas.envelope_schemas import OrderPayload

# Official intermediary CNPJs
MARKETPLACE_BY_CNPJ = {
    "35635824000112": "Shopee",
    "05570714000159": "Shopee",
    "57981711000101": "Shopee",
    "03007331000181": "Amazon",
    "15436940000103": "Amazon",
    "10573521000191": "Mercado Livre",
    "02757556000148": "Mercado Livre",
    "33014556000196": "Mercado Livre",
    "09339936000116": "Magazine Luiza",
    "22567970000130": "Americanas",
    "00776574000156": "Casas Bahia/Via",
    "14380200000121": "AliExpress",
    "09346601000125": "B2W/Submarino",
}

# Store order number shapes, checked in order
STORE_NUMBER_PATTERNS = [
    (re.compile(r"^\d{3}-\d{7}-\d{7}$"), "Amazon"),
    (re.compile(r"^26\d{4}[A-Z0-9]+$", re.IGNORECASE), "Shopee"),
    (re.compile(r"^\d{10,}$"), "Mercado Livre"),
]

USER_NAME_HINTS = [
    ("amazon", "Amazon"),
    ("shopee", "Shopee"),
    ("mercado", "Mercado Livre"),
    ("magalu", "Magazine Luiza"),
    ("magazine", "Magazine Luiza"),
]


def detect_marketplace(order: OrderPayload) -> Optional[str]:
    """
    Guess the marketplace an order came through.

    Tries, in order: the intermediary CNPJ, the store order number format,
    then the intermediary user name.

    Returns:
        Marketplace name, or None for direct sales
    """
    intermediary = order.intermediador

    cnpj = re.sub(r"\D", "", intermediary.cnpj or "") if intermediary else ""
    if cnpj in MARKETPLACE_BY_CNPJ:
        return MARKETPLACE_BY_CNPJ[cnpj]

    store_number = order.numeroLoja or ""
    if store_number:
        for pattern, name in STORE_NUMBER_PATTERNS:
            if pattern.match(store_number):
                return name

    user_name = (intermediary.nomeUsuario or "").lower() if intermediary else ""
    for hint, name in USER_NAME_HINTS:
        if hint in user_name:
            return name

    return None
