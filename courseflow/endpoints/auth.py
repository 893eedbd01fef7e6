from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseflow.schemas.auth import (
    ForgotPasswordRequest, LoginRequest, ResetPasswordRequest, Token, VerifyOTPRequest
)
from courseflow.schemas.response import APIResponse
from courseflow.services.auth import auth_service
from courseflow.services.otp import OTPService
from courseflow.utils import deps

router = APIRouter()


@router.post("/login", response_model=APIResponse[Token])
def login_for_access_token(
    login_in: LoginRequest,
    db: Session = Depends(deps.get_db)
):
    token = auth_service.login(db, login_in)
    return APIResponse(message="Login successful", data=token)


@router.post("/forgot-password", status_code=status.HTTP_200_OK, response_model=APIResponse[None])
async def forgot_password(
    request_in: ForgotPasswordRequest,
    db: Session = Depends(deps.get_db),
    otp_service: OTPService = Depends(deps.get_otp_service)
):
    await auth_service.request_password_reset(db, request_in.email, otp_service)
    return APIResponse(message="If an account exists for this email, a reset code has been sent")


@router.post("/verify-otp", status_code=status.HTTP_200_OK, response_model=APIResponse[None])
async def verify_otp(
    request_in: VerifyOTPRequest,
    otp_service: OTPService = Depends(deps.get_otp_service)
):
    await auth_service.verify_reset_code(request_in.email, request_in.code, otp_service)
    return APIResponse(message="Code verified")


@router.post("/reset-password", status_code=status.HTTP_200_OK, response_model=APIResponse[None])
async def reset_password(
    request_in: ResetPasswordRequest,
    db: Session = Depends(deps.get_transactional_db),
    otp_service: OTPService = Depends(deps.get_otp_service)
):
    await auth_service.reset_password(db, request_in, otp_service)
    return APIResponse(message="Password reset successfully")
