"""Shared router dependencies: services, authenticated caller, error responses."""
from __future__ import annotations

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from accounts.core.errors import DomainError, Reason
from accounts.core.identity import AuthenticatedUser
from accounts.services.account_service import AccountService
from accounts.services.deletion_service import DeletionService
from accounts.services.verification_service import VerificationService

REASON_STATUS = {
    Reason.MISSING_TOKEN: 400,
    Reason.NOT_FOUND: 404,
    Reason.ACCOUNT_NOT_FOUND: 404,
    Reason.ALREADY_USED: 400,
    Reason.EXPIRED: 400,
    Reason.ALREADY_VERIFIED: 400,
    Reason.EMAIL_TAKEN: 409,
    Reason.TOKEN_ALREADY_ISSUED: 409,
    Reason.RESEND_LIMIT_EXCEEDED: 429,
    Reason.RESEND_COOLDOWN_ACTIVE: 429,
    Reason.NOT_SCHEDULED: 400,
    Reason.GRACE_PERIOD_EXPIRED: 400,
}


def get_verification_service(request: Request) -> VerificationService:
    return request.app.state.verification_service


def get_deletion_service(request: Request) -> DeletionService:
    return request.app.state.deletion_service


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def current_identity(request: Request) -> AuthenticatedUser:
    resolver = request.app.state.identity_resolver
    identity = resolver(request.headers)
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return identity


def domain_error_response(error: DomainError) -> JSONResponse:
    headers = {}
    if error.retry_after_seconds:
        headers["Retry-After"] = str(error.retry_after_seconds)
    body = {"success": False, "error": error.message, "code": error.reason.value}
    if error.retry_after_seconds:
        body["retryAfterSeconds"] = error.retry_after_seconds
    return JSONResponse(body, status_code=REASON_STATUS.get(error.reason, 400), headers=headers or None)
