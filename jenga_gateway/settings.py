"""
Jenga Settings
Immutable credential snapshots and the builder that produces them.

A running process holds exactly one current ``JengaSettings`` value. Nothing
mutates it in place: updates go through ``SettingsBuilder`` (or
``JengaSettings.with_changes``) and yield a new snapshot, which is then
swapped in by reference. Components read the snapshot once per operation.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional

from jenga_gateway.errors import ConfigurationError

ENVIRONMENTS = ('sandbox', 'production')

DEFAULT_ENDPOINTS: Dict[str, Dict[str, str]] = {
    'sandbox': {
        'token': 'https://uat.finserve.africa/authentication/api/v3/authenticate/merchant',
        'payment': 'https://v3-uat.jengapgw.io/processPayment',
    },
    'production': {
        'token': 'https://api.finserve.africa/authentication/api/v3/authenticate/merchant',
        'payment': 'https://v3.jengapgw.io/processPayment',
    },
}

REQUIRED_CREDENTIALS = ('merchant_code', 'consumer_secret', 'api_key')


def _default_endpoints():
    return {env: dict(urls) for env, urls in DEFAULT_ENDPOINTS.items()}


@dataclass(frozen=True)
class JengaSettings:
    """Credentials and behaviour switches for the Jenga gateway."""

    merchant_code: str = ''
    consumer_secret: str = ''
    api_key: str = ''
    private_key: str = ''
    environment: str = 'sandbox'
    callback_url: str = '/api/v1/jenga/callback'
    success_url: str = '/payment/success'
    failure_url: str = '/payment/failed'
    verify_hash: bool = False
    timeout: int = 90
    verify_ssl: bool = True
    endpoints: Dict[str, Dict[str, str]] = field(default_factory=_default_endpoints)

    @property
    def token_endpoint(self) -> str:
        return self.endpoints[self.environment]['token']

    @property
    def payment_endpoint(self) -> str:
        return self.endpoints[self.environment]['payment']

    def missing_credentials(self):
        return [name for name in REQUIRED_CREDENTIALS if not getattr(self, name)]

    def with_changes(self, changes: Mapping[str, Any]) -> 'JengaSettings':
        """Return a new snapshot with the recognised keys of ``changes`` applied."""
        known = {f.name for f in fields(self)}
        updates = {key: value for key, value in changes.items() if key in known and value is not None}

        if 'environment' in updates:
            updates['environment'] = _normalise_environment(updates['environment'])
        # each snapshot owns its endpoint table
        updates['endpoints'] = _merge_endpoints(self.endpoints, updates.get('endpoints'))

        return replace(self, **updates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'merchant_code': self.merchant_code,
            'consumer_secret': self.consumer_secret,
            'api_key': self.api_key,
            'private_key': self.private_key,
            'environment': self.environment,
            'callback_url': self.callback_url,
            'success_url': self.success_url,
            'failure_url': self.failure_url,
            'verify_hash': self.verify_hash,
            'timeout': self.timeout,
            'verify_ssl': self.verify_ssl,
        }

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'JengaSettings':
        """Build a snapshot from Flask config (``JENGA_*`` keys)."""
        private_key = (config.get('JENGA_PRIVATE_KEY') or '').replace('\\n', '\n')
        key_path = config.get('JENGA_PRIVATE_KEY_PATH')
        if not private_key and key_path:
            with open(key_path, 'r', encoding='utf-8') as key_file:
                private_key = key_file.read()

        overrides = {}
        for env in ENVIRONMENTS:
            for kind in ('token', 'payment'):
                url = config.get(f'JENGA_{env.upper()}_{kind.upper()}_URL')
                if url:
                    overrides.setdefault(env, {})[kind] = url

        return cls(
            merchant_code=config.get('JENGA_MERCHANT_CODE') or '',
            consumer_secret=config.get('JENGA_CONSUMER_SECRET') or '',
            api_key=config.get('JENGA_API_KEY') or '',
            private_key=private_key,
            environment=_normalise_environment(config.get('JENGA_ENVIRONMENT') or 'sandbox'),
            callback_url=config.get('JENGA_CALLBACK_URL') or '/api/v1/jenga/callback',
            success_url=config.get('JENGA_SUCCESS_URL') or '/payment/success',
            failure_url=config.get('JENGA_FAILURE_URL') or '/payment/failed',
            verify_hash=bool(config.get('JENGA_VERIFY_HASH', False)),
            timeout=int(config.get('JENGA_TIMEOUT', 90)),
            verify_ssl=bool(config.get('JENGA_VERIFY_SSL', True)),
            endpoints=_merge_endpoints(_default_endpoints(), overrides),
        )


class SettingsBuilder:
    """
    Immutable builder for ``JengaSettings``.

    Every setter returns a new builder; the base snapshot is never touched.

        settings = (SettingsBuilder(current)
                    .merchant_code('MERCH001')
                    .environment('production')
                    .build())
    """

    def __init__(self, base: Optional[JengaSettings] = None, changes: Optional[Dict[str, Any]] = None):
        self._base = base or JengaSettings()
        self._changes = dict(changes or {})

    def _with(self, key, value) -> 'SettingsBuilder':
        changes = dict(self._changes)
        changes[key] = value
        return SettingsBuilder(self._base, changes)

    def merchant_code(self, code: str) -> 'SettingsBuilder':
        return self._with('merchant_code', code)

    def consumer_secret(self, secret: str) -> 'SettingsBuilder':
        return self._with('consumer_secret', secret)

    def api_key(self, key: str) -> 'SettingsBuilder':
        return self._with('api_key', key)

    def private_key(self, key: str) -> 'SettingsBuilder':
        return self._with('private_key', key)

    def environment(self, env: str) -> 'SettingsBuilder':
        return self._with('environment', _normalise_environment(env))

    def callback_url(self, url: str) -> 'SettingsBuilder':
        return self._with('callback_url', url)

    def update(self, settings: Mapping[str, Any]) -> 'SettingsBuilder':
        """Apply every recognised key of ``settings``; unknown keys are ignored."""
        builder = self
        known = {f.name for f in fields(JengaSettings)}
        for key, value in settings.items():
            if key in known and value is not None:
                if key == 'environment':
                    value = _normalise_environment(value)
                builder = builder._with(key, value)
        return builder

    def pending_changes(self) -> Dict[str, Any]:
        return dict(self._changes)

    def build(self, validate: bool = True) -> JengaSettings:
        settings = self._base.with_changes(self._changes)
        if validate:
            missing = settings.missing_credentials()
            if missing:
                raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
        return settings


def _normalise_environment(env: str) -> str:
    value = str(env).strip().lower()
    if value not in ENVIRONMENTS:
        raise ConfigurationError('Environment must be either "sandbox" or "production"')
    return value


def _merge_endpoints(current, overrides):
    merged = {env: dict(urls) for env, urls in current.items()}
    for env, urls in (overrides or {}).items():
        merged.setdefault(env, {}).update(urls)
    return merged
