from typing import Dict, Type
from momopay.providers.base import (
    CollectionProvider,
    CollectionStatus,
    PaymentProviderError,
    CollectionInitiationError,
    CollectionStatusError,
)
from momopay.providers.mtn_provider import MTNProvider
from momopay.providers.airtel_provider import AirtelProvider
from flask import current_app

# Provider registry
PROVIDERS: Dict[str, Type[CollectionProvider]] = {
    'MTN':    MTNProvider,
    'AIRTEL': AirtelProvider,
}


def get_provider(provider_name: str) -> CollectionProvider:
    """
    Get provider instance by name.

    Args:
        provider_name: Name of the provider ('MTN', 'AIRTEL')

    Returns:
        Initialized provider instance

    Raises:
        ValueError: If provider not found or not configured
    """
    provider_class = PROVIDERS.get(provider_name.upper())

    if not provider_class:
        raise ValueError(f'Unknown provider: {provider_name}')

    config = _get_provider_config(provider_name.upper())
    return provider_class(config)


def _get_provider_config(provider_name: str) -> dict:
    """Get provider configuration from Flask app config."""
    cfg = current_app.config

    common = {
        'http_timeout':   cfg.get('PROVIDER_HTTP_TIMEOUT', 30),
        'status_timeout': cfg.get('PROVIDER_STATUS_TIMEOUT', 5),
        'poll_attempts':  cfg.get('COLLECTION_POLL_ATTEMPTS', 10),
        'poll_interval':  cfg.get('COLLECTION_POLL_INTERVAL', 3),
    }

    if provider_name == 'MTN':
        return {
            **common,
            # Required
            'user_id':            cfg.get('MTN_USER_ID'),
            'api_key':            cfg.get('MTN_API_KEY'),
            'subscription_key':   cfg.get('MTN_PRIMARY_KEY'),
            # Environment
            'base_url':           cfg.get('MTN_BASE_URL'),
            'target_environment': cfg.get('MTN_TARGET_ENVIRONMENT', 'sandbox'),
            'currency':           cfg.get('MTN_CURRENCY', 'EUR'),
        }

    elif provider_name == 'AIRTEL':
        return {
            **common,
            'client_id':     cfg.get('AIRTEL_CLIENT_ID'),
            'client_secret': cfg.get('AIRTEL_CLIENT_SECRET'),
            'base_url':      cfg.get('AIRTEL_BASE_URL'),
            'country':       cfg.get('AIRTEL_COUNTRY', 'UG'),
            'currency':      cfg.get('AIRTEL_CURRENCY', 'UGX'),
        }

    return common


def list_available_providers():
    """List all available providers."""
    return list(PROVIDERS.keys())


__all__ = [
    'get_provider',
    'list_available_providers',
    'PROVIDERS',
    'CollectionProvider',
    'CollectionStatus',
    'PaymentProviderError',
    'CollectionInitiationError',
    'CollectionStatusError',
]
