"""
P2P Modules.

Business engines over the P2P kernel:
- Purchasing: goods receipts, cost layers, receipt posting
- Payables: vendor invoices, payment terms, bank accounts, payments
- Accounting: facades for callers outside the purchase-to-pay cycle

Each module owns its transaction boundary; the kernel only flushes.
"""
