"""
Shared Kernel

Value objects, domain events, the unit of work and the message bus
used by the booking engine apps.
"""
