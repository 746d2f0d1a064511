"""Dianji — family check-in backend.

Connects adult children living abroad with their parents at home. This
package holds the account and session core: family registration, invite
codes, signed session tokens, request guards and rate limiting.
"""

__version__ = "0.1.0"
