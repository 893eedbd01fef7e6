from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from courseflow.core.database import SessionLocal
from courseflow.core.security import decode_access_token
from courseflow.crud.user import user as user_crud
from courseflow.schemas.auth import TokenPayload
from courseflow.schemas.user import UserContext
from courseflow.services.otp import OTPService
from courseflow.services.storage import StorageRouter, storage_router

http_bearer = HTTPBearer()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_transactional_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_storage_router() -> StorageRouter:
    return storage_router

def get_current_user_with_context(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer)
) -> UserContext:
    try:
        payload = decode_access_token(credentials.credentials)
        token_data = TokenPayload(**payload)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = user_crud.get(db, id=token_data.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    # the stored role is authoritative; a stale token claim cannot escalate
    return UserContext(user=user, role=user.role)

def get_otp_service(request: Request) -> OTPService:
    return request.app.state.otp_service
