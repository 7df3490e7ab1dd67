"""
P2P Kernel

The accounting core of the purchase-to-pay back office:
- Chart of accounts and per-organization role mapping
- Append-only, balanced journal entries
- Gapless document numbering under concurrent access
- Typed errors and structured logging shared by every module
"""

__version__ = "0.1.0"
