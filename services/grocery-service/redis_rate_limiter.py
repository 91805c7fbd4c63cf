"""Redis-backed rate limiter middleware."""
import logging
import time
from typing import Optional, Tuple

import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from exceptions import AuthenticationError
from monitoring import rate_limit_exceeded_counter, suspicious_activity_counter
from security import decode_access_token

logger = logging.getLogger(__name__)

SUSPICIOUS_WINDOW_SECONDS = 300

# (status predicate, pattern name, threshold within the suspicious window)
SUSPICIOUS_PATTERNS = (
    (lambda status: status == 401, "credential_stuffing", 5),
    (lambda status: status == 403, "privilege_probing", 10),
    (lambda status: status == 404, "endpoint_scanning", 10),
    (lambda status: 400 <= status < 500, "abuse", 20),
)


class RedisRateLimiter(BaseHTTPMiddleware):
    """
    Sliding-window rate limiter shared across service instances.

    Two tiers are enforced: a per-IP limit and a lower per-user limit keyed by
    the subject of a verified bearer token. Requests are allowed when Redis
    is unavailable.
    """

    def __init__(
        self,
        app,
        redis_client: redis.Redis,
        requests_per_minute_ip: int = 5000,
        requests_per_minute_user: int = 500,
        window_seconds: int = 60
    ):
        """
        Initialize Redis-backed rate limiter.

        Args:
            app: ASGI application
            redis_client: Redis connection
            requests_per_minute_ip: Max requests per IP per window
            requests_per_minute_user: Max requests per user per window
            window_seconds: Sliding window size in seconds
        """
        super().__init__(app)
        self.redis = redis_client
        self.requests_per_minute_ip = requests_per_minute_ip
        self.requests_per_minute_user = requests_per_minute_user
        self.window_seconds = window_seconds

    def _check_rate_limit(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """
        Record a request in a sorted set and count the window.

        Returns:
            Tuple of (is_allowed, current_count)
        """
        try:
            current_time = time.time()

            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, current_time - window)
            pipe.zcard(key)
            pipe.zadd(key, {str(current_time): current_time})
            pipe.expire(key, window + 1)
            results = pipe.execute()

            # Count before this request was added
            count = results[1]
            return count < limit, count + 1

        except redis.RedisError as e:
            logger.error("Redis rate limit error", extra={"error": str(e)})
            return True, 0

    def _too_many_requests(self, limit_type: str, limit: int) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={
                "success": False,
                "message": f"Rate limit exceeded for {limit_type}. Maximum {limit} requests per minute.",
                "data": None
            },
            headers={"Retry-After": str(self.window_seconds)}
        )

    @staticmethod
    def _verified_subject(auth_header: Optional[str]) -> Optional[str]:
        """Subject of a correctly signed bearer token, or None."""
        if not auth_header:
            return None
        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None
        try:
            return decode_access_token(parts[1]).email
        except AuthenticationError:
            return None

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        if "x-forwarded-for" in request.headers:
            client_ip = request.headers["x-forwarded-for"].split(",")[0].strip()

        subject = self._verified_subject(request.headers.get("authorization"))

        ip_allowed, ip_count = self._check_rate_limit(
            f"rate:ip:{client_ip}",
            self.requests_per_minute_ip,
            self.window_seconds
        )
        if not ip_allowed:
            rate_limit_exceeded_counter.add(1, {"limit_type": "ip"})
            logger.warning("Rate limit exceeded for IP", extra={
                "client_ip": client_ip,
                "count": ip_count,
                "limit": self.requests_per_minute_ip
            })
            return self._too_many_requests("IP", self.requests_per_minute_ip)

        if subject:
            user_allowed, user_count = self._check_rate_limit(
                f"rate:user:{subject}",
                self.requests_per_minute_user,
                self.window_seconds
            )
            if not user_allowed:
                rate_limit_exceeded_counter.add(1, {"limit_type": "user"})
                logger.warning("Rate limit exceeded for user", extra={
                    "user": subject,
                    "count": user_count,
                    "limit": self.requests_per_minute_user
                })
                return self._too_many_requests("user", self.requests_per_minute_user)

        response = await call_next(request)

        self._detect_suspicious_activity(response.status_code, client_ip)

        return response

    def _detect_suspicious_activity(self, status_code: int, client_ip: str) -> None:
        """Count error responses per IP and flag bursts of them."""
        try:
            current_time = time.time()
            for matches, pattern, threshold in SUSPICIOUS_PATTERNS:
                if not matches(status_code):
                    continue

                key = f"suspicious:{pattern}:{client_ip}"
                self.redis.zadd(key, {str(current_time): current_time})
                self.redis.expire(key, SUSPICIOUS_WINDOW_SECONDS + 1)

                count = self.redis.zcount(key, current_time - SUSPICIOUS_WINDOW_SECONDS, current_time)
                if count >= threshold:
                    suspicious_activity_counter.add(1, {"type": pattern})
                    logger.warning("Suspicious activity detected", extra={
                        "type": pattern,
                        "client_ip": client_ip,
                        "count": count
                    })

        except redis.RedisError as e:
            logger.error("Error detecting suspicious activity", extra={"error": str(e)})
