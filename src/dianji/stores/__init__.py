"""Persistence adapters.

The auth core only talks to two narrow contracts defined in stores.base:
CredentialStore (accounts + families) and CounterStore (rate-limit
counters). Each has a production implementation (SQLAlchemy, Redis) and an
in-process one used by the "memory" backend and the test suite.
"""
