"""
Ledger writes.

Every append to or removal from a key runs inside transaction.atomic() with the
key's StockBalance row locked (select_for_update). Under that lock the key is
replayed, OUT movements are checked against the replay, rows are appended with
balance_after = running quantity, and the StockBalance row is updated with a
version compare-and-swap. A writer that loses the swap raises ConflictError and
its whole transaction rolls back.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ledger.exceptions import ConflictError, InsufficientStockError
from ledger.models import StockBalance, StockTransaction, TxType

from .balance import DIRECT, ZERO, Balance, lowest_quantity, running_balances, stock_key
from .stock_view import key_balance, key_entries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Movement:
    """A ledger row waiting to be appended. godown=None targets the direct key."""
    material: object
    godown: object
    site: object
    tx_type: str
    quantity: Decimal
    rate: Decimal
    # Pass-through OUTs (site deliveries) follow their own IN and are not checked.
    check_stock: bool = True

    @property
    def key(self):
        return stock_key(self.material.id, self.godown.id if self.godown is not None else None)


def check_availability(material, godown, requested, available=None):
    """
    Raise InsufficientStockError when `requested` exceeds the balance of
    (material, godown); godown=None checks the direct key. Returns the Balance used.
    `available` is a Balance the caller already folded under the key's lock.
    """
    if available is None:
        available = key_balance(material.id, godown.id if godown is not None else None)
    if requested > available.quantity:
        logger.warning(
            "Insufficient stock: material=%s location=%s available=%s requested=%s",
            material.id, godown.id if godown is not None else DIRECT, available.quantity, requested,
        )
        raise InsufficientStockError(material, godown, available.quantity, requested)
    return available


def _require_atomic():
    if not transaction.get_connection().in_atomic_block:
        raise transaction.TransactionManagementError(
            "Stock ledger writes must run inside transaction.atomic()"
        )


def _lock_order(key):
    material_id, location = key
    return (material_id, -1 if location == DIRECT else location)


def lock_keys(pairs):
    """
    Lock the StockBalance row of every (material, godown) pair, creating missing rows.
    Rows are locked in (material_id, godown_id) order, direct first, so two writers
    touching the same keys cannot deadlock. Returns {key: StockBalance}.
    """
    _require_atomic()
    wanted = {}
    for material, godown in pairs:
        key = stock_key(material.id, godown.id if godown is not None else None)
        wanted.setdefault(key, (material, godown))
    locked = {}
    for key in sorted(wanted, key=_lock_order):
        material, godown = wanted[key]
        row, _ = StockBalance.objects.select_for_update().get_or_create(material=material, godown=godown)
        locked[key] = row
    return locked


def _store_balance(row, balance):
    updated = StockBalance.objects.filter(pk=row.pk, version=row.version).update(
        quantity=balance.quantity,
        total_value=balance.total_value,
        version=F("version") + 1,
        updated_at=timezone.now(),
    )
    if updated != 1:
        raise ConflictError(
            f"Stock balance of material {row.material_id} at {row.godown_id or DIRECT} changed concurrently"
        )
    row.quantity = balance.quantity
    row.total_value = balance.total_value
    row.version += 1


def _replay_locked(locked):
    balances = {}
    for key, row in locked.items():
        balance = key_balance(*key)
        if row.version and (row.quantity != balance.quantity or row.total_value != balance.total_value):
            logger.warning(
                "Stock balance cache drift for material=%s location=%s: cached=%s replayed=%s",
                key[0], key[1], row.quantity, balance.quantity,
            )
        balances[key] = balance
    return balances


class StockPosting:
    """
    Ledger rows of one source document.

        with transaction.atomic():
            posting = StockPosting(movements).prepare()  # locks + checks, may raise
            issue = MaterialIssue.objects.create(...)
            posting.append(ReferenceTable.MATERIAL_ISSUES, issue.id, issue.issue_date)

    OUT movements are checked cumulatively: two movements on the same key see the
    balance left by the earlier one.
    """

    def __init__(self, movements):
        self.movements = list(movements)
        self._locked = {}
        self._balances = {}
        self._prepared = False

    def prepare(self):
        self._locked = lock_keys((m.material, m.godown) for m in self.movements)
        self._balances = _replay_locked(self._locked)
        running = dict(self._balances)
        for m in self.movements:
            if m.tx_type == TxType.OUT and m.check_stock:
                check_availability(m.material, m.godown, m.quantity, available=running[m.key])
            running[m.key] = running[m.key].apply(m.tx_type, m.quantity, m.rate)
        self._prepared = True
        return self

    def append(self, reference_table, reference_id, tx_date):
        if not self._prepared:
            raise RuntimeError("StockPosting.prepare() must run before append()")
        _require_atomic()
        entries = []
        for m in self.movements:
            balance = self._balances[m.key].apply(m.tx_type, m.quantity, m.rate)
            entries.append(StockTransaction.objects.create(
                material=m.material,
                godown=m.godown,
                site=m.site,
                tx_type=m.tx_type,
                reference_table=reference_table,
                reference_id=reference_id,
                quantity=m.quantity,
                rate=m.rate,
                balance_after=balance.quantity,
                tx_date=tx_date,
            ))
            self._balances[m.key] = balance
        for key, row in self._locked.items():
            _store_balance(row, self._balances[key])
            if self._balances[key].is_negative:
                logger.warning("Stock key material=%s location=%s is negative after posting", key[0], key[1])
        logger.info("Posted %d stock movement(s) for %s #%s", len(entries), reference_table, reference_id)
        return entries


def refold_key(material_id, godown_id):
    """
    Replay one key and rewrite every balance_after that disagrees with the replay.
    Returns (final Balance, number of rows rewritten, lowest running quantity).
    Caller holds the key's lock.
    """
    stale = []
    balance = Balance()
    lowest = ZERO
    for entry, balance in running_balances(key_entries(material_id, godown_id)):
        lowest = min(lowest, balance.quantity)
        if entry.balance_after != balance.quantity:
            entry.balance_after = balance.quantity
            stale.append(entry)
    if stale:
        StockTransaction.objects.bulk_update(stale, ["balance_after"])
    return balance, len(stale), lowest


def remove_document_entries(reference_table, reference_id):
    """
    Delete the ledger rows of one bill or issue and re-fold the keys they touched.
    Raises ConflictError when, anywhere in a key's history, the running balance
    would drop below zero (and below its lowest point before the removal): the
    stock was already issued onwards. Returns the number of rows deleted.
    """
    _require_atomic()
    entries = list(
        StockTransaction.objects.filter(reference_table=reference_table, reference_id=reference_id)
        .select_related("material", "godown")
    )
    if not entries:
        return 0
    locked = lock_keys((e.material, e.godown) for e in entries)
    lowest_before = {key: lowest_quantity(key_entries(*key)) for key in locked}
    deleted, _ = StockTransaction.objects.filter(pk__in=[e.pk for e in entries]).delete()
    for key, row in locked.items():
        balance, rewritten, lowest = refold_key(*key)
        if lowest < 0 and lowest < lowest_before[key]:
            raise ConflictError(
                f"Cannot remove stock of material {row.material} from "
                f"{row.godown or 'direct stock'}: it has already been issued "
                f"(running balance would drop to {lowest})"
            )
        _store_balance(row, balance)
        if rewritten:
            logger.info("Rewrote balance_after on %d row(s) of material=%s location=%s", rewritten, key[0], key[1])
    logger.info("Removed %d stock movement(s) of %s #%s", deleted, reference_table, reference_id)
    return deleted


def resync_key(material, godown):
    """Lock one key, rewrite its balance_after values and cache from the replay."""
    locked = lock_keys([(material, godown)])
    (key, row), = locked.items()
    balance, rewritten, _ = refold_key(*key)
    _store_balance(row, balance)
    return balance, rewritten
