from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from api_verge import config


def get_sentry_kwargs():
    """
    Returns Sentry configuration kwargs.

    The integration is created fresh each time to ensure proper initialization
    when sentry_sdk.init() is called. Creating the integration at module import time
    (before init) can prevent proper hooking into aiohttp's client internals.
    """
    sample_rate = config.SENTRY_SAMPLE_RATE
    return {
        "dsn": config.SENTRY_DSN,
        "integrations": [AioHttpIntegration()],
        "environment": config.ENVIRONMENT or "unknown",
        "traces_sample_rate": 1.0 if sample_rate is None else sample_rate,
    }
