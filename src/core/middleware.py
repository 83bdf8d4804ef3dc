"""Core middleware."""
import logging
import threading

logger = logging.getLogger("hrm8")

_thread_locals = threading.local()


def get_current_user():
    return getattr(_thread_locals, "user", None)


class AuditActorMiddleware:
    """Store current user in thread-local so audit entries can name the actor."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        _thread_locals.user = request.user if hasattr(request, "user") and request.user.is_authenticated else None
        try:
            return self.get_response(request)
        finally:
            _thread_locals.user = None
