from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from accounts.core.errors import Err
from accounts.core.identity import AuthenticatedUser
from accounts.routers.deps import (
    current_identity,
    domain_error_response,
    get_account_service,
    get_deletion_service,
)
from accounts.schemas import RegisterRequest
from accounts.services.account_service import AccountService
from accounts.services.deletion_service import DeletionService

router = APIRouter(tags=["account"])


@router.post("/accounts", status_code=201)
def register(data: RegisterRequest, service: AccountService = Depends(get_account_service)):
    result = service.register(data.email, data.first_name, data.last_name)
    if isinstance(result, Err):
        return domain_error_response(result.error)
    registered = result.value
    return JSONResponse(
        {
            "success": True,
            "message": "Account created; check your inbox to verify it",
            "data": {"user": registered.account.to_dict(), "emailSent": registered.email_sent},
        },
        status_code=201,
    )


@router.delete("/account")
def delete_account(
    identity: AuthenticatedUser = Depends(current_identity),
    service: DeletionService = Depends(get_deletion_service),
):
    result = service.schedule_soft_delete(identity)
    if isinstance(result, Err):
        return domain_error_response(result.error)
    return {
        "success": True,
        "message": "Account scheduled for deletion",
        "data": result.value.to_dict(),
    }


@router.post("/account/recover")
def recover_account(
    identity: AuthenticatedUser = Depends(current_identity),
    service: DeletionService = Depends(get_deletion_service),
):
    result = service.recover_account(identity)
    if isinstance(result, Err):
        return domain_error_response(result.error)
    return {
        "success": True,
        "message": "Account recovered",
        "data": {"user": result.value.to_dict()},
    }
