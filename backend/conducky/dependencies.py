import threading
import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .application.password_reset_rate_limit import (
    PasswordResetRateLimiter,
    RedisAttemptStore,
)
from .auth.principal import Principal
from .auth.role_resolver import RoleResolver
from .config import settings
from .crud.audit_log import AuditLogRepository
from .crud.notifications import NotificationRepository
from .crud.reports import ReportRepository
from .crud.roles import RoleAssignmentRepository
from .database import get_session
from .domain.ports.clock import Clock, SystemClock
from .domain.ports.notifications import NotificationPort
from .domain.ports.notifier import Notifier
from .infra.email import build_notifier
from .infra.redis import get_async_redis_client
from .models.user import User
from .security.token_inspection import ExpiredTokenError, InvalidTokenError, read_access_token
from .services.audit_service import AuditService
from .services.notification_dispatcher import NotificationDispatcher
from .use_cases.reports.context import ReportContext

bearer_scheme = HTTPBearer(auto_error=False)

_notifier: Notifier | None = None
_rate_limiter: PasswordResetRateLimiter | None = None
_singleton_lock = threading.Lock()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def get_clock() -> Clock:
    return SystemClock()


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        with _singleton_lock:
            if _notifier is None:
                _notifier = build_notifier(settings)
    return _notifier


def get_password_reset_limiter() -> PasswordResetRateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        with _singleton_lock:
            if _rate_limiter is None:
                _rate_limiter = PasswordResetRateLimiter(
                    RedisAttemptStore(get_async_redis_client()),
                    max_attempts=settings.password_reset_max_attempts,
                    window_seconds=settings.password_reset_window_seconds,
                )
    return _rate_limiter


def get_notification_port(db: AsyncSession = Depends(get_db)) -> NotificationPort:
    return NotificationRepository(db)


def get_anonymous_reports_enabled() -> bool:
    return settings.anonymous_reports


def get_role_resolver(db: AsyncSession = Depends(get_db)) -> RoleResolver:
    return RoleResolver(RoleAssignmentRepository(db))


def get_report_context(
    db: AsyncSession = Depends(get_db),
    resolver: RoleResolver = Depends(get_role_resolver),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
) -> ReportContext:
    dispatcher = NotificationDispatcher(
        NotificationRepository(db),
        resolver,
        notifier,
        clock,
        base_url=settings.app_base_url,
        max_concurrency=settings.notification_max_concurrency,
    )
    return ReportContext(
        reports=ReportRepository(db),
        resolver=resolver,
        dispatcher=dispatcher,
        audit=AuditService(AuditLogRepository(db)),
        clock=clock,
    )


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> uuid.UUID:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )

    try:
        user_id = read_access_token(credentials.credentials).user_id
    except ExpiredTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired"
        ) from None
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        ) from None

    if await db.get(User, user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found"
        )
    return user_id


async def get_optional_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> uuid.UUID | None:
    if credentials is None:
        return None
    return await get_current_user_id(credentials=credentials, db=db)


async def get_current_principal(
    user_id: uuid.UUID = Depends(get_current_user_id),
    resolver: RoleResolver = Depends(get_role_resolver),
) -> Principal:
    return await resolver.principal_for(user_id)


async def get_optional_principal(
    user_id: uuid.UUID | None = Depends(get_optional_user_id),
    resolver: RoleResolver = Depends(get_role_resolver),
) -> Principal:
    return await resolver.principal_for(user_id)
