import logging
import math
import threading
import time
from collections import deque
from functools import wraps

from flask import current_app, request

from dms.errors import RateLimitExceeded
from dms.schemas import PHONE_RE

logger = logging.getLogger('dms.rate_limit')


class SlidingWindowLimiter:
    """Counts hits per key over the trailing `window_seconds`.

    State is kept in process memory and is lost on restart. Keys whose hits
    have all aged out are dropped.
    """

    def __init__(self, max_requests, window_seconds, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self):
        return len(self._hits)

    def hit(self, key):
        """Record a hit for `key`. Returns None if allowed, else seconds to wait."""
        now = self.clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            hits = self._hits.get(key)
            if hits is None:
                hits = self._hits[key] = deque()
            self._prune(hits, now)
            if len(hits) >= self.max_requests:
                return max(1, math.ceil(self.window_seconds - (now - hits[0])))
            hits.append(now)
        return None

    def reset(self):
        with self._lock:
            self._hits.clear()

    def _prune(self, hits, now):
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now):
        for key in list(self._hits):
            hits = self._hits[key]
            self._prune(hits, now)
            if not hits:
                del self._hits[key]
        self._last_sweep = now


def client_address():
    return request.remote_addr or 'unknown'


def otp_request_key():
    """Key issuance requests on the number they would issue for, else on the client."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        mobile_number = data.get('mobile_number')
        if isinstance(mobile_number, str):
            mobile_number = mobile_number.strip()
            if PHONE_RE.match(mobile_number):
                return f"phone:{mobile_number}"
    return f"ip:{client_address()}"


def rate_limited(extension_name, key_func, message):
    """Reject the request with 429 once the limiter in app.extensions is exhausted."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            limiter = current_app.extensions[extension_name]
            key = key_func()
            retry_after = limiter.hit(key)
            if retry_after is not None:
                logger.warning("Rate limit hit for %s on %s", key.split(':', 1)[0], request.path)
                raise RateLimitExceeded(message, retry_after)
            return view(*args, **kwargs)
        return wrapper
    return decorator
