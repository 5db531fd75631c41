"""Stock ledger constants."""

from django.db import models


class TransactionType(models.TextChoices):
    IN = "IN", "Stock in"
    OUT = "OUT", "Stock out"


# Sign applied to a transaction's quantity when summing the ledger.
LEDGER_SIGN: dict[str, int] = {
    TransactionType.IN: 1,
    TransactionType.OUT: -1,
}

COMPLETION_REASON_TEMPLATE = "order completed: {order_number}"
