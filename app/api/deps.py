from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.core.security import decode_access_token
from app.models.auth import User
from app.database import get_db
from app.core.media_handle.cloudinary import MediaProcessor, get_media_processor
from app.services.messages import MessageLifecycle

bearer_scheme = HTTPBearer()


def get_user_from_token(token: str, db: Session) -> User:
    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid or expired token',
            headers={'WWW-Authenticate': 'Bearer'}
            )

    try:
        user_id = int(payload.get('sub'))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail='Token payload invalid')

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail='User no longer exists')

    if user.is_blocked:
        raise HTTPException(status_code=403, detail='Your account is blocked')

    if not user.is_active or not user.is_verified:
        raise HTTPException(
            status_code=403,
            detail='Your account is deactivated. Please reactivate your account and then try again'
        )

    return user



def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme), db: Session = Depends(get_db)) -> User:
    return get_user_from_token(credentials.credentials, db)







def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != 'admin':
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Admin access required')
    return current_user



def get_message_lifecycle(media: MediaProcessor = Depends(get_media_processor)) -> MessageLifecycle:
    return MessageLifecycle(media)
