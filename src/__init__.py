"""
Finance Tracker Client - Source Package

Client-side reconciliation and aggregation layer for a personal-finance
tracking API: accounts, transactions, recurring charges, budgets and
savings goals.

DESIGN PRINCIPLES:
1. Normalize every server payload before anything else touches it
2. Partially valid payloads degrade to defaults, never to errors
3. Network failures surface as one categorized error per request
4. Exports are complete or they fail loudly
5. Transport layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
