"""Venues app package.

Registry of venues, their courts and the owners' court events. These rows
are maintained by venue owners; the booking engine only reads them.
"""
