import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from courseflow.core.security import create_access_token, verify_password
from courseflow.crud.user import user as crud_user
from courseflow.schemas.auth import LoginRequest, ResetPasswordRequest, Token
from courseflow.services.otp import OTPService

logger = logging.getLogger(__name__)


class AuthService:

    def login(self, db: Session, login_in: LoginRequest) -> Token:
        user = crud_user.get_by_email(db, email=login_in.email)
        if not user or not user.hashed_password or not verify_password(login_in.password, user.hashed_password):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
        return Token(access_token=create_access_token(user.id, user.role.value))

    async def request_password_reset(self, db: Session, email: str, otp_service: OTPService):
        user = crud_user.get_by_email(db, email=email)
        if not user:
            # same response either way so accounts cannot be probed
            logger.info(f"Password reset requested for unknown email {email}")
            return
        await otp_service.issue(user.email)

    async def verify_reset_code(self, email: str, code: str, otp_service: OTPService):
        if not await otp_service.verify(email, code):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired code")

    async def reset_password(self, db: Session, reset_in: ResetPasswordRequest, otp_service: OTPService):
        await self.verify_reset_code(reset_in.email, reset_in.code, otp_service)
        user = crud_user.get_by_email(db, email=reset_in.email)
        if not user:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired code")
        crud_user.set_password(db, db_obj=user, password=reset_in.new_password)
        await otp_service.clear(reset_in.email)
        logger.info(f"Password reset completed for user {user.id}")


auth_service = AuthService()
