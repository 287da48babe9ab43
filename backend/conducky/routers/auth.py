import logging

from fastapi import APIRouter, Depends, status

from ..application.password_reset_rate_limit import PasswordResetRateLimiter
from ..dependencies import get_password_reset_limiter
from ..schemas.auth import PasswordResetRequest

logger = logging.getLogger("conducky.auth")

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_ACCEPTED_MESSAGE = (
    "If an account with that email exists, you will receive a password reset link."
)


@router.post("/forgot-password", status_code=status.HTTP_202_ACCEPTED)
async def forgot_password(
    payload: PasswordResetRequest,
    limiter: PasswordResetRateLimiter = Depends(get_password_reset_limiter),
) -> dict[str, str]:
    # Token issuance and delivery live outside this service; only the
    # attempt limit is enforced here. The response never reveals whether
    # the account exists.
    await limiter.enforce(payload.email)
    logger.info("password_reset_requested")
    return {"message": RESET_ACCEPTED_MESSAGE}
