from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from cortexbuild.core.config import settings
from cortexbuild.core.firebase import verify_firebase_token, claims_to_user
from cortexbuild.core.database import get_db
from cortexbuild.core.cache import get_cache, minute_window_key
from cortexbuild.services.plan_catalog import FREE_PLAN_ID, UNLIMITED
from cortexbuild.services.subscription_service import SubscriptionService
from typing import Optional
import logging

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ['/health', '/docs', '/openapi.json', '/redoc']


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-minute request limiting.
    Authenticated callers get their plan's max_api_calls_per_minute, anonymous
    callers a fixed per-IP allowance. Counters live in Redis; without Redis
    requests pass through.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.cache = get_cache()
        self.subscriptions = SubscriptionService()

    async def dispatch(self, request: Request, call_next):
        if not settings.rate_limit_enabled or request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        user = self._authenticate(request)
        if user:
            limit = self._plan_limit(user['uid'], user['company_id'])
            identity = f"{user['uid']}:{user['company_id']}"
            scope = 'user'
        else:
            limit = settings.unauthenticated_requests_per_minute
            identity = self._get_client_ip(request)
            scope = 'ip'

        if limit == UNLIMITED:
            return await call_next(request)

        count = self.cache.incr(minute_window_key(scope, identity), ttl_seconds=60)
        if count is not None and count > limit:
            logger.warning(f"Rate limit exceeded (per minute) - {scope}: {identity}, limit: {limit}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": f"Rate limit exceeded. Your plan allows {limit} API calls per minute. Please try again later.",
                    "retry_after": 60
                },
                headers={
                    "Retry-After": "60",
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                }
            )

        response = await call_next(request)
        if count is not None:
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        return response

    def _authenticate(self, request: Request) -> Optional[dict]:
        auth_header = request.headers.get('Authorization')
        if not auth_header or not auth_header.startswith('Bearer '):
            return None

        try:
            user = claims_to_user(verify_firebase_token(auth_header.split(' ')[1]))
        except Exception as e:
            # The auth dependency rejects the request later
            logger.debug(f"Rate limit middleware: Could not verify token: {e}")
            return None

        if not user['uid']:
            return None
        request.state.user_id = user['uid']
        request.state.company_id = user['company_id']
        return user

    def _plan_limit(self, user_id: str, company_id: str) -> int:
        """max_api_calls_per_minute of the caller's plan; users without a subscription get the free plan's"""
        db_gen = get_db()
        db = next(db_gen)
        try:
            subscription = self.subscriptions.get_user_subscription(db, user_id, company_id)
            plan_id = subscription.plan_id if subscription else FREE_PLAN_ID
            plan = self.subscriptions.catalog.get_plan_by_id(db, plan_id)
            if not plan:
                return settings.unauthenticated_requests_per_minute
            limit = self.subscriptions.catalog.get_limit(plan, 'max_api_calls_per_minute')
            return settings.unauthenticated_requests_per_minute if limit is None else limit
        finally:
            db_gen.close()

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address from request"""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"
