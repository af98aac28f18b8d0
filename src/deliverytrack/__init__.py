"""Delivery Tracker - delivery lifecycle service for small logistics operations.

Deliveries move through pending -> collected -> finished. Drivers claim
pending deliveries (at most one driver wins a claim) and the administrator
oversees the whole board.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
