"""Booking admission control and capacity reconciliation for coworking areas."""

__version__ = "1.0.0"
