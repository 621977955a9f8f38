from __future__ import annotations

from fastapi import APIRouter, Depends

from accounts.core.errors import Err
from accounts.core.identity import AuthenticatedUser
from accounts.routers.deps import current_identity, domain_error_response, get_verification_service
from accounts.schemas import VerifyEmailRequest
from accounts.services.verification_service import VerificationService

router = APIRouter(tags=["email-verification"])


@router.post("/verify-email")
def verify_email(
    data: VerifyEmailRequest | None = None,
    service: VerificationService = Depends(get_verification_service),
):
    result = service.verify_token(data.token if data else None)
    if isinstance(result, Err):
        return domain_error_response(result.error)
    return {
        "success": True,
        "message": "Email verified",
        "data": {"user": result.value.to_dict()},
    }


@router.post("/resend-verification")
def resend_verification(
    identity: AuthenticatedUser = Depends(current_identity),
    service: VerificationService = Depends(get_verification_service),
):
    result = service.resend_and_notify(identity)
    if isinstance(result, Err):
        return domain_error_response(result.error)
    issued = result.value
    return {
        "success": True,
        "message": "Verification email sent" if issued.email_sent else "Verification token renewed",
        "data": {
            "remainingAttempts": issued.remaining_attempts,
            "expiresAt": issued.expires_at.isoformat(),
            "emailSent": issued.email_sent,
        },
    }
