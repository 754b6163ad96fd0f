"""camelCase payloads for the report dicts built in reports.services."""
from org.utils import decimal_str


def _site_ref(site):
    return {"id": site.id, "name": site.name, "address": site.address}


def _material_ref(material):
    return {"id": material.id, "name": material.name, "unit": material.unit, "hsnSac": material.hsn_sac}


def _entry_payload(entry):
    payload = {
        "type": entry["kind"],
        "documentId": entry["document_id"],
        "date": entry["date"].isoformat(),
        "quantity": decimal_str(entry["quantity"]),
        "rate": decimal_str(entry["rate"]),
        "totalValue": decimal_str(entry["total_value"]),
        "fromGodown": entry["from_godown"],
        "reference": entry["reference"],
        "isDirectPurchase": entry["kind"] == "DIRECT_PURCHASE",
    }
    if entry["company"]:
        payload["company"] = entry["company"]
    return payload


def site_report_payload(report, with_entries=False):
    materials = []
    for line in report["materials"]:
        row = {
            "materialId": line["material"].id,
            "materialName": line["material"].name,
            "unit": line["material"].unit,
            "totalQuantity": decimal_str(line["total_quantity"]),
            "totalValue": decimal_str(line["total_value"]),
        }
        if with_entries:
            row["issues"] = [_entry_payload(e) for e in line["entries"]]
        materials.append(row)
    return {
        "site": _site_ref(report["site"]),
        "materials": materials,
        "grandTotal": decimal_str(report["grand_total"]),
        "totalMaterials": report["total_materials"],
    }


def all_site_reports_payload(data):
    summary = data["summary"]
    return {
        "siteReports": [site_report_payload(r) for r in data["site_reports"]],
        "summary": {
            "totalSites": summary["total_sites"],
            "overallTotal": decimal_str(summary["overall_total"]),
            "totalMaterials": summary["total_materials"],
        },
    }


def site_history_payload(data):
    return {
        "site": _site_ref(data["site"]),
        "material": _material_ref(data["material"]),
        "history": [_entry_payload(e) for e in data["history"]],
        "totals": {
            "totalQuantity": decimal_str(data["total_quantity"]),
            "totalValue": decimal_str(data["total_value"]),
        },
    }


def _summary_payload(summary):
    return {
        "totalAdded": decimal_str(summary["total_added"]),
        "totalDistributed": decimal_str(summary["total_distributed"]),
        "remaining": decimal_str(summary["remaining"]),
    }


def material_report_payload(data):
    return {
        "material": _material_ref(data["material"]),
        "summary": _summary_payload(data["summary"]),
        "additions": [
            {
                "date": a["date"].isoformat(),
                "quantity": decimal_str(a["quantity"]),
                "rate": decimal_str(a["rate"]),
                "totalValue": decimal_str(a["total_value"]),
                "invoiceNumber": a["invoice_number"],
                "company": a["company"],
                "deliveredTo": a["delivered_to"],
                "purchaseBillId": a["purchase_bill_id"],
            }
            for a in data["additions"]
        ],
        "distribution": [
            {
                "siteId": share["site"].id,
                "siteName": share["site"].name,
                "totalQuantity": decimal_str(share["total_quantity"]),
                "totalValue": decimal_str(share["total_value"]),
                "issues": [
                    {
                        "date": i["date"].isoformat(),
                        "quantity": decimal_str(i["quantity"]),
                        "rate": decimal_str(i["rate"]),
                        "totalValue": decimal_str(i["total_value"]),
                        "issueId": i["identifier"],
                        "fromGodown": i["from_godown"],
                    }
                    for i in share["issues"]
                ],
            }
            for share in data["distribution"]
        ],
    }


def all_material_reports_payload(data):
    return {
        "materialReports": [
            {
                "material": _material_ref(r["material"]),
                "summary": _summary_payload(r["summary"]),
                "siteDistribution": [
                    {"siteName": s["site_name"], "quantity": decimal_str(s["quantity"])}
                    for s in r["site_distribution"]
                ],
            }
            for r in data["material_reports"]
        ],
        "summary": {
            "totalMaterials": data["summary"]["total_materials"],
            "totalAdded": decimal_str(data["summary"]["total_added"]),
            "totalDistributed": decimal_str(data["summary"]["total_distributed"]),
        },
    }
