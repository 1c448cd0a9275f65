class InventoryLedgerException(Exception):
    """Raised when a ledger write would break 0 <= reserved <= on_hand."""

    def __init__(self, message, code="LEDGER_VIOLATION", details=None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)
