"""Shared FastAPI dependencies: settings, credential store, auth service.

Learn: create_app() parks process-wide objects on app.state (settings,
session factory or memory store). These dependencies hand them to route
handlers, and tests swap them via app.dependency_overrides.
"""

from typing import AsyncIterator

from fastapi import Depends, Request

from dianji.config import Settings
from dianji.services.auth_service import AuthService
from dianji.stores.base import CredentialStore
from dianji.stores.sql import SqlCredentialStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_credential_store(request: Request) -> AsyncIterator[CredentialStore]:
    """Yields a store per request; SQL sessions auto-close."""
    state = request.app.state
    if state.memory_store is not None:
        yield state.memory_store
        return
    async with state.session_factory() as session:
        yield SqlCredentialStore(session)


def get_auth_service(
    store: CredentialStore = Depends(get_credential_store),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(store, settings)
