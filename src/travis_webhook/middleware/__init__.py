"""
Travis CI webhook middleware for ASGI and WSGI frameworks.

Re-exports middleware classes for convenient imports:
    from travis_webhook.middleware import TravisWebhookASGIMiddleware
    from travis_webhook.middleware import TravisWebhookWSGIMiddleware
"""

from .wsgi import TravisWebhookWSGIMiddleware

__all__: list[str] = ["TravisWebhookWSGIMiddleware"]

# ASGI middleware (FastAPI, Starlette)
try:
    from .asgi import TravisWebhookASGIMiddleware
    __all__.append("TravisWebhookASGIMiddleware")
except ImportError:
    pass
