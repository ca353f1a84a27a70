"""
Stitch Kernel - contract costing and production allocation engine.

Tracks embroidery contract items from rate derivation through machine
allocation, production consumption and outsourced clipping work:
- Deterministic rate cascade with explicit stale-value retention
- Machine allocation with estimated completion days
- Running production counters with atomic increments
- Outsourcing ledger that never over-receives
- Progress and schedule rollups per item, contract and vendor
"""

__version__ = "0.1.0"
