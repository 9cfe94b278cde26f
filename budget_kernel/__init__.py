"""
Budget Kernel

Budget variance and approval engine for multi-tenant construction
project costing:
- Exact Decimal variance / impact calculation with fixed 80% / 95% thresholds
- Draft -> pending -> approved/rejected workflow gated by role capabilities
- Denormalized project consumed amount, mutated only on approval
- Threshold alerts with de-duplication
- Append-only audit log, explicit tenant scoping on every query
"""

__version__ = "0.1.0"
