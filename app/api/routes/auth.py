from fastapi import APIRouter, Depends, HTTPException, Response, status
from datetime import timedelta, timezone, datetime
from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.CommonResponse import ApiResponse, ok
from app.schemas.auth import RegisterResponse, UserCreate, loginRequest, VerifyOtpRequest, UserResponse, OtpRequestResend, TokenResponse, resetOtpRequest, resetPasswordRequest, forgotPasswordRequest
from app.core.errors import AppError, BadRequestError, ForbiddenError, NotFoundError
from app.core.logger import logger
from app.core.security import hash_password, verify_password, create_access_token, create_reset_password_token, verify_reset_password_token
from app.core.email import generate_otp, send_otp_email, send_password_reset_email
from app.core.config import settings
from app.api.deps import get_current_user
from app.models.auth import User


def get_user_by_email(db: Session, email: str):
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()



def issue_otp(user: User, minutes: int) -> str:
    otp = generate_otp()
    user.otp_code = otp
    user.otp_expires_at = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    user.otp_attempts = 0
    return otp



def clear_otp(user: User) -> None:
    user.otp_code = None
    user.otp_expires_at = None
    user.otp_attempts = 0



def check_otp(db: Session, user: User, otp_code: int, max_attempts: int) -> None:
    """Raise if ``otp_code`` is wrong or expired; failed attempts are committed."""
    stored_otp = str(user.otp_code).strip() if user.otp_code is not None else None
    if stored_otp != str(otp_code).strip():
        user.otp_attempts += 1
        remaining_attempts = max_attempts - user.otp_attempts
        if remaining_attempts <= 0:
            clear_otp(user)
            db.commit()
            raise BadRequestError('Too many failed OTP attempts. Please request a new OTP.')
        db.commit()
        raise BadRequestError(f'Invalid OTP code. {remaining_attempts} attempts remaining.')

    expires_at = user.otp_expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at < datetime.now(timezone.utc):
        raise BadRequestError('OTP code has expired. Please request a new OTP.')



def needs_activation(user: User) -> bool:
    return not user.is_verified or not user.is_active





router = APIRouter(prefix='/auth', tags=['Authentication'])




@router.post('/register', response_model=ApiResponse[RegisterResponse])
def register(data: UserCreate, response: Response, db: Session = Depends(get_db)):
    if data.password != data.confirm_password:
        raise BadRequestError('Passwords are not the same. Please provide correct passwords')

    existing = db.execute(
        select(User).where(or_(User.email == data.email, User.username == data.username))
    ).scalars().first()
    if existing:
        if existing.email != data.email or existing.is_verified:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT,
                                detail=(f'An account with {data.email} or username {data.username} already exists. '
                                        'Please login instead. ')
                                )
        otp = issue_otp(existing, settings.OTP_EXPIRE_MINUTES)
        db.commit()
        send_otp_email(existing.email, otp, existing.username)
        return ok(
            f'An unverified account with {data.email} already exists.',
            RegisterResponse(
                message='A new OTP has been sent to your email. Please verify your account.',
                email=data.email,
                otp_expires_in_minute=settings.OTP_EXPIRE_MINUTES
            ),
        )

    user = User(
        username=data.username,
        email=data.email,
        hashed_password=hash_password(data.password),
        role='user',
        is_verified=False,
    )
    otp = issue_otp(user, settings.OTP_EXPIRE_MINUTES)
    db.add(user)
    db.commit()

    if not send_otp_email(data.email, otp, data.username):
        db.delete(user)
        db.commit()
        raise AppError('Failed to send OTP', status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(f"User {user.id} registered, waiting for activation")
    response.status_code = status.HTTP_201_CREATED
    return ok(
        'Registration successful. Please check your email for the OTP code to verify your account.',
        RegisterResponse(
            message='Registration successful. Please check your email for the OTP code to verify your account.',
            email=data.email,
            otp_expires_in_minute=settings.OTP_EXPIRE_MINUTES
        ),
        status.HTTP_201_CREATED,
    )





@router.post('/verify-otp', response_model=ApiResponse[dict])
def verify_otp(data: VerifyOtpRequest, db: Session = Depends(get_db)):
    user = get_user_by_email(db, data.email)
    if not user:
        raise NotFoundError(f'No account found for {data.email} email')

    if not needs_activation(user):
        raise BadRequestError('Account already verified, please login')

    check_otp(db, user, data.otp_code, settings.OTP_MAX_ATTEMPTS)

    user.is_verified = True
    user.is_active = True
    clear_otp(user)
    db.commit()
    logger.info(f"User {user.id} activated")

    return ok('Account verified successfully. You can now login.')







@router.post('/login', response_model=ApiResponse[TokenResponse])
def login(data: loginRequest, db: Session = Depends(get_db)):
    user = get_user_by_email(db, data.email)
    if not user or not verify_password(data.password, user.hashed_password):
        raise BadRequestError('Invalid email or password')

    if not user.is_verified:
        raise ForbiddenError('Please verify your account before login or resend OTP to your email')

    if not user.is_active:
        raise ForbiddenError('Your account is deactivated. Please reactivate your account and then try again')

    if user.is_blocked:
        raise ForbiddenError('Your account is blocked')

    return ok(
        'Login successful',
        TokenResponse(
            access_token=create_access_token(user.id, user.role),
            token_type='bearer',
            user=UserResponse.model_validate(user),
        ),
    )







@router.post('/forgot-password', response_model=ApiResponse[dict])
def forgot_password(data: forgotPasswordRequest, db: Session = Depends(get_db)):
    user = get_user_by_email(db, data.email)
    if not user:
        raise NotFoundError(f'No account found for {data.email} email')

    if not user.is_verified:
        raise ForbiddenError('Account not verified. Please verify your account before resetting password.')

    otp = issue_otp(user, settings.RESET_OTP_EXPIRE_MINUTES)
    db.commit()

    if not send_password_reset_email(data.email, otp, user.username):
        raise AppError('Failed to send password reset OTP email', status.HTTP_500_INTERNAL_SERVER_ERROR)

    return ok(
        f"Password reset OTP sent to {data.email} if an account exists.",
        {'email': data.email, 'otp_expires_in_minute': settings.RESET_OTP_EXPIRE_MINUTES},
    )








@router.post('/verify-reset-otp', response_model=ApiResponse[dict])
def verify_reset_otp(data: resetOtpRequest, db: Session = Depends(get_db)):
    user = get_user_by_email(db, data.email)
    if not user:
        raise NotFoundError(f'No account found for {data.email} email')

    if not user.is_verified:
        raise ForbiddenError('Account not verified. Please verify your account before resetting password.')

    check_otp(db, user, data.otp_code, settings.RESET_OTP_MAX_ATTEMPTS)

    clear_otp(user)
    db.commit()

    return ok(
        'OTP verified successfully. You can now reset your password.',
        {'reset_token': create_reset_password_token(user.email)},
    )









@router.post('/reset-password', response_model=ApiResponse[dict])
def reset_password(data: resetPasswordRequest, db: Session = Depends(get_db)):
    email = verify_reset_password_token(data.reset_token)
    if not email:
        raise BadRequestError('Invalid or expired reset token')

    if data.new_password != data.confirm_password:
        raise BadRequestError('Passwords are different')

    user = get_user_by_email(db, email)
    if not user:
        raise NotFoundError(f'No account found for {email} email')

    if verify_password(data.new_password, user.hashed_password):
        raise BadRequestError('New password cannot be the same as the old password')

    user.hashed_password = hash_password(data.new_password)
    clear_otp(user)
    db.commit()
    logger.info(f"User {user.id} reset their password")

    return ok(
        'Password reset successful. You can now login with your new password.',
        {'access_token': create_access_token(user.id, user.role)},
    )








@router.post('/resend-otp', response_model=ApiResponse[dict])
def resend_otp(data: OtpRequestResend, db: Session = Depends(get_db)):
    user = get_user_by_email(db, data.email)
    if not user:
        raise NotFoundError(f'No account found for {data.email} email')

    if not needs_activation(user):
        raise BadRequestError('Already account verified, please login')

    otp = issue_otp(user, settings.OTP_EXPIRE_MINUTES)
    db.commit()

    if not send_otp_email(user.email, otp, user.username):
        raise AppError('Failed to send OTP', status.HTTP_500_INTERNAL_SERVER_ERROR)

    return ok(
        f'OTP resent to {data.email} if an unverified account exists.',
        {'email': data.email, 'otp_expires_in_minute': settings.OTP_EXPIRE_MINUTES},
    )








@router.post('/logout', status_code=status.HTTP_204_NO_CONTENT)
def logout(response: Response, current_user: User = Depends(get_current_user)):
    # access tokens are stateless; the client drops its copy
    response.delete_cookie('token')
    logger.info(f"User {current_user.id} logged out")
