"""
Settings Service
Holds the process-wide Jenga settings snapshot and exposes it to the API
"""

import logging
import threading
from typing import Any, Dict, Mapping, Optional

from jenga_gateway.errors import AppError
from jenga_gateway.settings import JengaSettings, SettingsBuilder

logger = logging.getLogger(__name__)

PRIVATE_KEY_PLACEHOLDER = '***PRIVATE_KEY_SET***'


class SettingsStore:
    """
    Current settings snapshot for the process.

    Readers call current() once and work with that value. Saves build a
    complete new snapshot first and then replace the reference, so a reader
    sees either the old settings or the new ones, never a mix.
    """

    def __init__(self, settings: JengaSettings):
        self._current = settings
        self._write_lock = threading.Lock()

    def current(self) -> JengaSettings:
        return self._current

    def builder(self) -> SettingsBuilder:
        return SettingsBuilder(self._current)

    def save(self, builder: SettingsBuilder) -> JengaSettings:
        """
        Validate and publish the builder's settings

        Raises:
            ConfigurationError: required credentials missing or environment invalid
        """
        with self._write_lock:
            settings = SettingsBuilder(self._current, builder.pending_changes()).build()
            self._current = settings

        logger.info("Jenga settings updated (environment=%s)", settings.environment)
        return settings

    def update(self, changes: Mapping[str, Any]) -> JengaSettings:
        return self.save(self.builder().update(changes))


def get_settings_store(app) -> SettingsStore:
    return app.extensions['jenga']['settings']


def mask_settings(settings: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Mask credentials for display

    consumer_secret shows its last 4 characters, api_key its first and last
    4 (fully masked when 8 characters or fewer); the private key is never shown.
    """
    masked = dict(settings)

    secret = masked.get('consumer_secret')
    if secret:
        masked['consumer_secret'] = '*' * max(0, len(secret) - 4) + secret[-4:]

    api_key = masked.get('api_key')
    if api_key:
        length = len(api_key)
        if length > 8:
            masked['api_key'] = api_key[:4] + '*' * (length - 8) + api_key[-4:]
        else:
            masked['api_key'] = '*' * length

    if masked.get('private_key'):
        masked['private_key'] = PRIVATE_KEY_PLACEHOLDER

    return masked


def check_connection(settings: JengaSettings, client_factory=None) -> Dict[str, Any]:
    """
    Try a token exchange with the given settings

    Returns:
        Dict with success flag, message and whether a token came back
    """
    from jenga_gateway.providers import JengaClient

    factory = client_factory or JengaClient
    missing = settings.missing_credentials()
    if missing:
        return {
            'success': False,
            'message': f"Missing required settings: {', '.join(missing)}",
            'token_received': False,
        }

    try:
        token = factory(settings).authenticate()
    except AppError as e:
        return {
            'success': False,
            'message': e.message,
            'token_received': False,
        }

    return {
        'success': True,
        'message': 'Connection successful',
        'token_received': bool(token),
    }
