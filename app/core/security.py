from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from app.core.config import settings


pwd_context = CryptContext(schemes=['argon2'], deprecated='auto')

ACCESS_TOKEN_TYPE = 'access'
RESET_TOKEN_TYPE = 'reset'


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)




def verify_password(plain_password: str, hash_password: str) -> bool:
    return pwd_context.verify(plain_password, hash_password)



def _encode(claims: dict, expires_delta: timedelta) -> str:
    to_encode = claims.copy()
    to_encode.update({'exp': datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _decode(token: str, token_type: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get('type') != token_type:
        return None
    return payload




def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    claims = {'sub': str(user_id), 'role': role, 'type': ACCESS_TOKEN_TYPE}
    return _encode(claims, expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))




def decode_access_token(token: str) -> Optional[dict]:
    return _decode(token, ACCESS_TOKEN_TYPE)




def create_reset_password_token(email: str) -> str:
    claims = {'sub': email, 'type': RESET_TOKEN_TYPE}
    return _encode(claims, timedelta(minutes=settings.RESET_OTP_EXPIRE_MINUTES))





def verify_reset_password_token(token: str) -> Optional[str]:
    payload = _decode(token, RESET_TOKEN_TYPE)
    if payload is None:
        return None
    return payload.get('sub')
