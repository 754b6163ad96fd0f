"""
Report Aggregator: site-wise and material-wise totals re-derived from the source
documents (purchase bill items and material issue items), not from the ledger.

The two views agree per (material, site) whenever every document was posted
through billing.services / inventory.services: each issue item and each
direct-to-site bill item produces exactly one OUT ledger row that carries the
site, the item's quantity and the item's rate. reconcile_site_totals() checks it.
"""
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from billing.models import DeliveredTo, PurchaseBillItem
from inventory.models import Material, MaterialIssueItem, Site
from ledger.models import StockTransaction, TxType

ZERO = Decimal("0")

ISSUE = "ISSUE"
DIRECT_PURCHASE = "DIRECT_PURCHASE"


def _issue_items(site=None, material=None):
    qs = MaterialIssueItem.objects.select_related(
        "material", "material_issue__site", "material_issue__from_godown"
    )
    if site is not None:
        qs = qs.filter(material_issue__site=site)
    if material is not None:
        qs = qs.filter(material=material)
    return qs.order_by("-material_issue__issue_date", "-material_issue_id", "id")


def _direct_purchase_items(site=None, material=None):
    qs = PurchaseBillItem.objects.select_related(
        "material", "purchase_bill__company", "purchase_bill__delivered_to_site"
    ).filter(purchase_bill__delivered_to_type=DeliveredTo.SITE)
    if site is not None:
        qs = qs.filter(purchase_bill__delivered_to_site=site)
    if material is not None:
        qs = qs.filter(material=material)
    return qs.order_by("-purchase_bill__bill_date", "-purchase_bill_id", "id")


def _issue_entry(item):
    issue = item.material_issue
    return {
        "kind": ISSUE,
        "document_id": issue.id,
        "date": issue.issue_date,
        "created_at": issue.created_at,
        "quantity": item.quantity,
        "rate": item.rate,
        "total_value": item.quantity * item.rate,
        "from_godown": issue.from_godown.name if issue.from_godown else "Direct",
        "reference": f"Issue #{issue.identifier}",
        "company": None,
    }


def _direct_purchase_entry(item):
    bill = item.purchase_bill
    return {
        "kind": DIRECT_PURCHASE,
        "document_id": bill.id,
        "date": bill.bill_date,
        "created_at": bill.created_at,
        "quantity": item.quantity,
        "rate": item.rate,
        "total_value": item.quantity * item.rate,
        "from_godown": "Direct Purchase",
        "reference": f"Bill #{bill.invoice_number}",
        "company": bill.company.name,
    }


def _summarise_site(site, issue_items, purchase_items, with_entries=False):
    by_material = {}
    pairs = [(i, _issue_entry(i)) for i in issue_items]
    pairs += [(i, _direct_purchase_entry(i)) for i in purchase_items]
    for item, entry in pairs:
        line = by_material.get(item.material_id)
        if line is None:
            line = by_material[item.material_id] = {
                "material": item.material,
                "total_quantity": ZERO,
                "total_value": ZERO,
                "entries": [],
            }
        line["total_quantity"] += entry["quantity"]
        line["total_value"] += entry["total_value"]
        if with_entries:
            line["entries"].append(entry)
    materials = sorted(by_material.values(), key=lambda line: line["material"].name.lower())
    return {
        "site": site,
        "materials": materials,
        "grand_total": sum((line["total_value"] for line in materials), ZERO),
        "total_materials": len(materials),
    }


def site_material_report(site):
    """What one site has received, per material, with every issue and direct purchase listed."""
    return _summarise_site(
        site,
        list(_issue_items(site=site)),
        list(_direct_purchase_items(site=site)),
        with_entries=True,
    )


def all_site_material_reports():
    issues = defaultdict(list)
    for item in _issue_items():
        issues[item.material_issue.site_id].append(item)
    purchases = defaultdict(list)
    for item in _direct_purchase_items():
        purchases[item.purchase_bill.delivered_to_site_id].append(item)

    reports = [
        _summarise_site(site, issues.get(site.id, []), purchases.get(site.id, []))
        for site in Site.objects.order_by("name")
    ]
    return {
        "site_reports": reports,
        "summary": {
            "total_sites": len(reports),
            "overall_total": sum((r["grand_total"] for r in reports), ZERO),
            "total_materials": sum(r["total_materials"] for r in reports),
        },
    }


def site_material_history(site, material):
    """
    Issues and direct purchases of one material at one site, newest first.
    Documents dated the same day are ordered by when they were recorded.
    """
    history = [_issue_entry(i) for i in _issue_items(site=site, material=material)]
    history += [_direct_purchase_entry(i) for i in _direct_purchase_items(site=site, material=material)]
    history.sort(key=lambda entry: (entry["date"], entry["created_at"], entry["document_id"]), reverse=True)
    return {
        "site": site,
        "material": material,
        "history": history,
        "total_quantity": sum((e["quantity"] for e in history), ZERO),
        "total_value": sum((e["total_value"] for e in history), ZERO),
    }


def _bill_items(material=None):
    qs = PurchaseBillItem.objects.select_related("material", "purchase_bill__company")
    if material is not None:
        qs = qs.filter(material=material)
    return qs.order_by("-purchase_bill__bill_date", "-purchase_bill_id", "id")


def _summary(total_added, total_distributed):
    return {
        "total_added": total_added,
        "total_distributed": total_distributed,
        "remaining": total_added - total_distributed,
    }


def material_wise_report(material):
    """
    Everything bought of one material (every bill item, godown or site delivery)
    against everything issued of it, with the issues broken down per site.
    """
    additions = []
    total_added = ZERO
    for item in _bill_items(material=material):
        bill = item.purchase_bill
        total_added += item.quantity
        additions.append({
            "date": bill.bill_date,
            "quantity": item.quantity,
            "rate": item.rate,
            "total_value": item.quantity * item.rate,
            "invoice_number": bill.invoice_number,
            "company": bill.company.name,
            "delivered_to": bill.get_delivered_to_type_display(),
            "purchase_bill_id": bill.id,
        })

    distribution = {}
    total_distributed = ZERO
    for item in _issue_items(material=material):
        issue = item.material_issue
        value = item.quantity * item.rate
        total_distributed += item.quantity
        share = distribution.get(issue.site_id)
        if share is None:
            share = distribution[issue.site_id] = {
                "site": issue.site, "total_quantity": ZERO, "total_value": ZERO, "issues": [],
            }
        share["total_quantity"] += item.quantity
        share["total_value"] += value
        share["issues"].append({
            "date": issue.issue_date,
            "quantity": item.quantity,
            "rate": item.rate,
            "total_value": value,
            "identifier": issue.identifier,
            "from_godown": issue.from_godown.name if issue.from_godown else "Direct",
        })

    return {
        "material": material,
        "summary": _summary(total_added, total_distributed),
        "additions": additions,
        "distribution": list(distribution.values()),
    }


def all_material_wise_reports():
    added = defaultdict(lambda: ZERO)
    for material_id, quantity in PurchaseBillItem.objects.values_list("material_id", "quantity"):
        added[material_id] += quantity
    distributed = defaultdict(lambda: ZERO)
    per_site = defaultdict(dict)
    for material_id, site_name, quantity in MaterialIssueItem.objects.order_by("id").values_list(
        "material_id", "material_issue__site__name", "quantity"
    ):
        distributed[material_id] += quantity
        per_site[material_id][site_name] = per_site[material_id].get(site_name, ZERO) + quantity

    reports = [
        {
            "material": material,
            "summary": _summary(added[material.id], distributed[material.id]),
            "site_distribution": [
                {"site_name": name, "quantity": quantity} for name, quantity in per_site[material.id].items()
            ],
        }
        for material in Material.objects.order_by("name")
    ]
    return {
        "material_reports": reports,
        "summary": {
            "total_materials": len(reports),
            "total_added": sum((r["summary"]["total_added"] for r in reports), ZERO),
            "total_distributed": sum((r["summary"]["total_distributed"] for r in reports), ZERO),
        },
    }


# --- Ledger vs documents ---


@dataclass(frozen=True)
class SiteMismatch:
    material_id: int
    site_id: int
    ledger_quantity: Decimal
    document_quantity: Decimal
    ledger_value: Decimal
    document_value: Decimal


def ledger_site_consumption():
    """{(material_id, site_id): (quantity, value)} from the ledger's OUT rows that carry a site."""
    totals = defaultdict(lambda: (ZERO, ZERO))
    rows = StockTransaction.objects.filter(tx_type=TxType.OUT, site__isnull=False).values_list(
        "material_id", "site_id", "quantity", "rate"
    )
    for material_id, site_id, quantity, rate in rows:
        q, v = totals[(material_id, site_id)]
        totals[(material_id, site_id)] = (q + quantity, v + quantity * rate)
    return dict(totals)


def document_site_consumption():
    """Same shape as ledger_site_consumption(), from issue items and direct-to-site bill items."""
    totals = defaultdict(lambda: (ZERO, ZERO))
    issue_rows = MaterialIssueItem.objects.values_list("material_id", "material_issue__site_id", "quantity", "rate")
    bill_rows = PurchaseBillItem.objects.filter(
        purchase_bill__delivered_to_type=DeliveredTo.SITE
    ).values_list("material_id", "purchase_bill__delivered_to_site_id", "quantity", "rate")
    for rows in (issue_rows, bill_rows):
        for material_id, site_id, quantity, rate in rows:
            q, v = totals[(material_id, site_id)]
            totals[(material_id, site_id)] = (q + quantity, v + quantity * rate)
    return dict(totals)


def reconcile_site_totals():
    """(material, site) pairs on which the ledger and the documents disagree. Empty when consistent."""
    ledger = ledger_site_consumption()
    documents = document_site_consumption()
    mismatches = []
    for material_id, site_id in sorted(set(ledger) | set(documents)):
        ledger_q, ledger_v = ledger.get((material_id, site_id), (ZERO, ZERO))
        doc_q, doc_v = documents.get((material_id, site_id), (ZERO, ZERO))
        if ledger_q != doc_q or ledger_v != doc_v:
            mismatches.append(SiteMismatch(material_id, site_id, ledger_q, doc_q, ledger_v, doc_v))
    return mismatches
