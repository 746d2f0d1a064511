"""Authentication: signed session tokens, password hashing, invite codes
and the FastAPI request guards built on them.

Two login handles resolve to one kind of principal:
1. Family creators ("child" role) → email + password
2. Invited members ("parent" role) → phone + password
"""
