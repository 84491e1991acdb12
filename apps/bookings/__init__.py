"""Bookings app package.

The booking conflict and availability engine: reservations on courts,
their lifecycle, the overlap and daily-limit checks run inside one
transaction per request, and the periodic no-show sweep.
"""
