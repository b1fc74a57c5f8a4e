from page_analyzer.db.models.urls import AddressRow, CheckRow

__all__ = [
    "AddressRow",
    "CheckRow",
]
