"""Medication inventory table definition."""

from clinic_ledger.database import TableSchema

medications = TableSchema(
    "medications",
    columns=(
        "name",
        "current_stock",
        "low_stock_threshold",
        "pending_replenish_amount",
    ),
)
