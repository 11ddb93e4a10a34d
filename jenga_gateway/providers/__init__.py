from typing import Optional

import requests
from flask import current_app

from jenga_gateway.providers.jenga_provider import JengaClient
from jenga_gateway.settings import JengaSettings


def get_client(settings: Optional[JengaSettings] = None, session: Optional[requests.Session] = None) -> JengaClient:
    """
    Build a Jenga client bound to a settings snapshot.

    Args:
        settings: Snapshot to use; defaults to the app's current settings
        session: Optional pre-configured requests session

    Returns:
        JengaClient instance
    """
    if settings is None:
        from jenga_gateway.services.settings_service import get_settings_store
        settings = get_settings_store(current_app).current()
    return JengaClient(settings, session=session)


__all__ = ['get_client', 'JengaClient']
