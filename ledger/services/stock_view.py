"""
Ledger reads: per-key replay and the current-inventory view.
Nothing here trusts StockBalance or balance_after; every number is re-derived
from the StockTransaction history.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from itertools import groupby

from django.db.models import F

from inventory.models import Godown, Material
from ledger.models import StockTransaction

from .balance import DIRECT, calculate_balance, running_balances, stock_key

logger = logging.getLogger(__name__)


@dataclass
class InventoryRow:
    material: Material
    godown: Godown | None
    quantity: Decimal
    total_value: Decimal
    last_updated: datetime


def key_entries(material_id, godown_id):
    """Ledger rows of exactly one key in replay order. godown_id=None selects the direct key."""
    qs = StockTransaction.objects.filter(material_id=material_id)
    if godown_id is None or godown_id == DIRECT:
        qs = qs.filter(godown__isnull=True)
    else:
        qs = qs.filter(godown_id=godown_id)
    return qs.order_by("created_at", "id")


def key_balance(material_id, godown_id):
    return calculate_balance(key_entries(material_id, godown_id))


def ledger_entries(godown_id=None, material_id=None):
    """
    All ledger rows ordered by (material, godown, created_at, id) so that each key's
    rows are contiguous and chronological. godown_id may be DIRECT.
    """
    qs = StockTransaction.objects.select_related("material", "godown")
    if godown_id == DIRECT:
        qs = qs.filter(godown__isnull=True)
    elif godown_id is not None:
        qs = qs.filter(godown_id=godown_id)
    if material_id is not None:
        qs = qs.filter(material_id=material_id)
    return qs.order_by("material_id", F("godown_id").asc(nulls_first=True), "created_at", "id")


def replay_keys(entries):
    """
    Group key-ordered entries and fold each group.
    Yields (key, rows, balance) with rows as a list in replay order.
    """
    for key, rows in groupby(entries, key=lambda e: stock_key(e.material_id, e.godown_id)):
        rows = list(rows)
        yield key, rows, calculate_balance(rows)


def build_inventory(godown_id=None, material_id=None):
    """
    Current inventory: one row per (material, godown-or-direct) key whose replayed
    quantity is strictly positive. Keys that replay negative are logged.
    """
    inventory = []
    for key, rows, balance in replay_keys(ledger_entries(godown_id=godown_id, material_id=material_id)):
        if balance.is_negative:
            logger.warning(
                "Negative stock balance for material=%s location=%s: quantity=%s value=%s",
                key[0], key[1], balance.quantity, balance.total_value,
            )
        if balance.quantity <= 0:
            continue
        inventory.append(InventoryRow(
            material=rows[0].material,
            godown=rows[0].godown,
            quantity=balance.quantity,
            total_value=balance.total_value,
            last_updated=max(r.created_at for r in rows),
        ))
    return inventory


def stale_balance_after(rows):
    """Rows (one key, replay order) whose stored balance_after differs from the replay."""
    return [
        (entry, balance.quantity)
        for entry, balance in running_balances(rows)
        if entry.balance_after != balance.quantity
    ]


def over_issued_entries(rows):
    """Rows (one key, replay order) after which the running quantity is below zero."""
    return [(entry, balance.quantity) for entry, balance in running_balances(rows) if balance.is_negative]
