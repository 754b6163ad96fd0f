"""Plain dict payloads for JSON responses. Decimals go out as strings."""
from org.utils import decimal_str


def timestamps_payload(obj):
    return {
        "createdAt": obj.created_at.isoformat() if obj.created_at else None,
        "updatedAt": obj.updated_at.isoformat() if obj.updated_at else None,
    }


def material_payload(material):
    if material is None:
        return None
    return {"id": material.id, "name": material.name, "unit": material.unit, "hsnSac": material.hsn_sac, **timestamps_payload(material)}


def godown_payload(godown):
    if godown is None:
        return None
    return {"id": godown.id, "name": godown.name, "address": godown.address, **timestamps_payload(godown)}


def site_payload(site):
    if site is None:
        return None
    return {"id": site.id, "name": site.name, "address": site.address, **timestamps_payload(site)}


def company_payload(company):
    if company is None:
        return None
    return {
        "id": company.id,
        "name": company.name,
        "gstin": company.gstin,
        "address": company.address,
        "contactPerson": company.contact_person,
        "mobileNumber": company.mobile_number,
        "emailId": company.email,
        **timestamps_payload(company),
    }


def creator_payload(user):
    if user is None:
        return None
    return {"id": user.id, "name": user.get_full_name() or user.get_username(), "email": user.email}


def line_item_payload(item):
    return {
        "id": item.id,
        "materialId": item.material_id,
        "material": material_payload(item.material),
        "quantity": decimal_str(item.quantity),
        "unit": item.unit,
        "rate": decimal_str(item.rate),
        "gstPercent": decimal_str(item.gst_percent),
        "totalExclGst": decimal_str(item.total_excl_gst),
        "totalInclGst": decimal_str(item.total_incl_gst),
    }


def material_issue_payload(issue):
    return {
        "id": issue.id,
        "identifier": issue.identifier,
        "issueDate": issue.issue_date.isoformat(),
        "siteId": issue.site_id,
        "site": site_payload(issue.site),
        "fromGodownId": issue.from_godown_id,
        "fromGodown": godown_payload(issue.from_godown),
        "createdBy": creator_payload(issue.created_by),
        "items": [line_item_payload(item) for item in issue.items.all()],
        **timestamps_payload(issue),
    }
