"""
Purchase bills: bill + items + ledger rows in one transaction.

GODOWN delivery: one IN per item at (material, godown).
SITE delivery: per item an IN and an immediate OUT on the direct key, both
carrying the site, so the goods pass straight through to consumption.
"""
import logging

from django.db import transaction

from ledger.models import ReferenceTable, TxType
from ledger.services.posting import Movement, StockPosting, remove_document_entries

from .destinations import GodownDestination, SiteDestination
from .models import PurchaseBill, PurchaseBillItem

logger = logging.getLogger(__name__)


def bill_movements(destination, rows):
    movements = []
    for row in rows:
        if isinstance(destination, GodownDestination):
            movements.append(Movement(
                material=row["material"], godown=destination.godown, site=None,
                tx_type=TxType.IN, quantity=row["quantity"], rate=row["rate"],
            ))
        elif isinstance(destination, SiteDestination):
            movements.append(Movement(
                material=row["material"], godown=None, site=destination.site,
                tx_type=TxType.IN, quantity=row["quantity"], rate=row["rate"],
            ))
            movements.append(Movement(
                material=row["material"], godown=None, site=destination.site,
                tx_type=TxType.OUT, quantity=row["quantity"], rate=row["rate"],
                check_stock=False,
            ))
        else:
            raise TypeError(f"Not a destination: {destination!r}")
    return movements


def create_purchase_bill(*, company, invoice_number, bill_date, destination, rows, gstin_number="", created_by=None):
    with transaction.atomic():
        posting = StockPosting(bill_movements(destination, rows)).prepare()
        bill = PurchaseBill(
            company=company,
            invoice_number=invoice_number,
            gstin_number=gstin_number or "",
            bill_date=bill_date,
            created_by=created_by,
        )
        bill.destination = destination
        bill.save()
        PurchaseBillItem.objects.bulk_create([
            PurchaseBillItem(
                purchase_bill=bill,
                material=row["material"],
                quantity=row["quantity"],
                unit=row["unit"],
                rate=row["rate"],
                gst_percent=row["gst_percent"],
                total_excl_gst=row["total_excl_gst"],
                total_incl_gst=row["total_incl_gst"],
                location_in_godown=row.get("location_in_godown") or "",
            )
            for row in rows
        ])
        posting.append(ReferenceTable.PURCHASE_BILLS, bill.id, bill.bill_date)
    logger.info(
        "Purchase bill %s from company %s: %d item(s) delivered to %s %s",
        bill.invoice_number, company.id, len(rows), destination.kind, destination.target.id,
    )
    return bill


def delete_purchase_bill(bill):
    """Remove the bill, its items and its ledger rows. ConflictError if its stock was already issued."""
    with transaction.atomic():
        removed = remove_document_entries(ReferenceTable.PURCHASE_BILLS, bill.id)
        bill_id = bill.id
        bill.delete()
    logger.info("Deleted purchase bill #%s and %d stock movement(s)", bill_id, removed)
