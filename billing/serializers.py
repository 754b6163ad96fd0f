from inventory.serializers import company_payload, creator_payload, line_item_payload, timestamps_payload


def bill_item_payload(item):
    payload = line_item_payload(item)
    payload["locationInGodown"] = item.location_in_godown
    return payload


def purchase_bill_payload(bill):
    return {
        "id": bill.id,
        "companyId": bill.company_id,
        "company": company_payload(bill.company),
        "invoiceNumber": bill.invoice_number,
        "gstinNumber": bill.gstin_number,
        "billDate": bill.bill_date.isoformat(),
        "deliveredToType": bill.delivered_to_type,
        "deliveredToId": bill.delivered_to_id,
        "createdBy": creator_payload(bill.created_by),
        "items": [bill_item_payload(item) for item in bill.items.all()],
        **timestamps_payload(bill),
    }
