"""
Procurement Kernel

Core of the procurement document system:
- Gap-tolerant, never-duplicated document numbering
- Atomic header + line-item persistence
- Shared status lifecycle for quote requests, purchase orders, service orders
- Append-only supplier price history with supersession on read
"""

__version__ = "0.1.0"
