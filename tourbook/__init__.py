"""Booking/review coordination service for the tour booking application."""

__version__ = "1.0.0"
