import time
from collections import deque

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse


class LoginRateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window throttle on the login endpoint, per client IP."""

    def __init__(self, app, path: str, window: int, max_requests: int, enabled: bool = True):
        super().__init__(app)
        self.path = path
        self.window = window
        self.max_req = max_requests
        self.enabled = enabled
        self.store = {}

    def _evict(self, now: float):
        for ip in list(self.store):
            dq = self.store[ip]
            while dq and now - dq[0] > self.window:
                dq.popleft()
            if not dq:
                del self.store[ip]

    async def dispatch(self, request, call_next):
        if not self.enabled or request.url.path != self.path:
            return await call_next(request)
        ip = request.client.host if request.client else "unknown"
        now = time.time()
        self._evict(now)
        dq = self.store.setdefault(ip, deque())
        if len(dq) >= self.max_req:
            return JSONResponse({"error": "Too many login attempts"}, status_code=429)
        dq.append(now)
        return await call_next(request)
