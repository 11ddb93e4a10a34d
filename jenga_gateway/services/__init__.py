from flask import current_app

from jenga_gateway.services.callback_service import CallbackReconciler
from jenga_gateway.services.settings_service import get_settings_store


def get_reconciler(app=None) -> CallbackReconciler:
    """Callback reconciler bound to the app's current settings and Payment adapter"""
    app = app or current_app._get_current_object()
    state = app.extensions['jenga']
    return CallbackReconciler(
        settings=get_settings_store(app).current(),
        payment_adapter=state.get('payment_adapter'),
        hash_verifier=state.get('hash_verifier'),
    )


__all__ = ['CallbackReconciler', 'get_reconciler']
