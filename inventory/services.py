"""
Material issues: validated rows in, issue + items + OUT ledger rows out, all in
one transaction. Stock is checked under the ledger key locks before anything is
written; one short item rejects the whole issue.
"""
import logging

from django.db import IntegrityError, transaction

from ledger.models import ReferenceTable, TxType
from ledger.services.posting import Movement, StockPosting, remove_document_entries

from .models import MaterialIssue, MaterialIssueItem

logger = logging.getLogger(__name__)

# Concurrent issues can race for the same MI-### number; the loser's transaction
# is rolled back entirely and re-run with a fresh number.
IDENTIFIER_ATTEMPTS = 3


def next_issue_identifier():
    last = MaterialIssue.objects.order_by("-id").values_list("identifier", flat=True).first()
    number = MaterialIssue.parse_identifier(last) if last else 0
    if number is None:
        number = MaterialIssue.objects.count()
    return MaterialIssue.format_identifier(number + 1)


def issue_movements(site, from_godown, rows):
    return [
        Movement(
            material=row["material"],
            godown=from_godown,
            site=site,
            tx_type=TxType.OUT,
            quantity=row["quantity"],
            rate=row["rate"],
        )
        for row in rows
    ]


def _create_issue_once(site, from_godown, issue_date, rows, created_by):
    with transaction.atomic():
        posting = StockPosting(issue_movements(site, from_godown, rows)).prepare()
        issue = MaterialIssue.objects.create(
            identifier=next_issue_identifier(),
            issue_date=issue_date,
            site=site,
            from_godown=from_godown,
            created_by=created_by,
        )
        MaterialIssueItem.objects.bulk_create([
            MaterialIssueItem(
                material_issue=issue,
                material=row["material"],
                quantity=row["quantity"],
                unit=row["unit"],
                rate=row["rate"],
                gst_percent=row["gst_percent"],
                total_excl_gst=row["total_excl_gst"],
                total_incl_gst=row["total_incl_gst"],
            )
            for row in rows
        ])
        posting.append(ReferenceTable.MATERIAL_ISSUES, issue.id, issue.issue_date)
    return issue


def create_material_issue(*, site, from_godown, issue_date, rows, created_by=None):
    """
    Create an issue from cleaned item rows. Raises InsufficientStockError (nothing
    written) when any row exceeds the stock left at its source.
    """
    for attempt in range(1, IDENTIFIER_ATTEMPTS + 1):
        try:
            issue = _create_issue_once(site, from_godown, issue_date, rows, created_by)
        except IntegrityError:
            if attempt == IDENTIFIER_ATTEMPTS:
                raise
            logger.warning("Material issue identifier collision, retrying (attempt %d)", attempt)
            continue
        logger.info(
            "Material issue %s: %d item(s) to site %s from %s",
            issue.identifier, len(rows), site.id, from_godown.id if from_godown else "direct",
        )
        return issue


def delete_material_issue(issue):
    with transaction.atomic():
        removed = remove_document_entries(ReferenceTable.MATERIAL_ISSUES, issue.id)
        identifier = issue.identifier
        issue.delete()
    logger.info("Deleted material issue %s and %d stock movement(s)", identifier, removed)
