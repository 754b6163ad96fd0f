from inventory.serializers import godown_payload, material_payload, site_payload
from org.utils import decimal_str


def inventory_row_payload(row):
    return {
        "material": material_payload(row.material),
        "godown": godown_payload(row.godown),
        "quantity": decimal_str(row.quantity),
        "totalValue": decimal_str(row.total_value),
        "lastUpdated": row.last_updated.isoformat(),
    }


def stock_transaction_payload(tx):
    return {
        "id": tx.id,
        "materialId": tx.material_id,
        "material": material_payload(tx.material),
        "godownId": tx.godown_id,
        "godown": godown_payload(tx.godown),
        "siteId": tx.site_id,
        "site": site_payload(tx.site),
        "txType": tx.tx_type,
        "referenceTable": tx.reference_table,
        "referenceId": tx.reference_id,
        "quantity": decimal_str(tx.quantity),
        "rate": decimal_str(tx.rate),
        "balanceAfter": decimal_str(tx.balance_after),
        "txDate": tx.tx_date.isoformat(),
        "createdAt": tx.created_at.isoformat(),
    }
