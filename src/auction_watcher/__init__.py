"""
Auction Watcher - change notifications for municipal apartment auctions.

Fetches the Bohumin housing-auction page, extracts listing entries,
compares them with the previous snapshot and emails newly posted
apartments of the requested sizes.
"""

__version__ = "0.1.0"
