"""
Approval Kernel

Rule-driven approval workflow for proposed business actions
(coupons, promotions, price changes, bulk discounts, flash sales):
- Threshold-based auto-approval at creation
- Single terminal transition per request (compare-and-swap)
- Passive expiration at read time
- Exactly-once downstream action and notification dispatch
"""

__version__ = "0.1.0"
