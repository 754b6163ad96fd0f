"""
Balance Calculator: running quantity and value of one (material, location) key.

Entries are folded in the order given; callers pass them ascending by
(created_at, id). IN adds quantity and quantity * rate, OUT subtracts both.
Nothing is clamped: a negative result means more went out than came in and is
returned as is.
"""
from dataclasses import dataclass
from decimal import Decimal

from ledger.models import TxType

ZERO = Decimal("0")

# Location part of a ledger key for stock that is not in any godown.
DIRECT = "direct"


def stock_key(material_id, godown_id):
    """(material_id, godown_id) with None mapped to the DIRECT sentinel."""
    return (material_id, godown_id if godown_id is not None else DIRECT)


@dataclass(frozen=True)
class Balance:
    quantity: Decimal = ZERO
    total_value: Decimal = ZERO

    @property
    def is_negative(self):
        return self.quantity < 0

    def apply(self, tx_type, quantity, rate):
        amount = quantity * rate
        if tx_type == TxType.IN:
            return Balance(self.quantity + quantity, self.total_value + amount)
        if tx_type == TxType.OUT:
            return Balance(self.quantity - quantity, self.total_value - amount)
        raise ValueError(f"Unknown transaction type: {tx_type!r}")


def running_balances(entries, start=None):
    """Yield (entry, balance after entry) for each entry in order."""
    balance = start or Balance()
    for entry in entries:
        balance = balance.apply(entry.tx_type, entry.quantity, entry.rate)
        yield entry, balance


def calculate_balance(entries):
    balance = Balance()
    for _, balance in running_balances(entries):
        pass
    return balance


def lowest_quantity(entries):
    """Smallest running quantity reached by the fold, never above zero."""
    lowest = ZERO
    for _, balance in running_balances(entries):
        lowest = min(lowest, balance.quantity)
    return lowest
