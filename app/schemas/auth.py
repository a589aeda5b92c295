from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


def _check_password_strength(v: str) -> str:
    if len(v.encode("utf-8")) > 100:
        raise ValueError("Password is too long (max 100 bytes). Use a shorter password.")
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters.")
    return v



def _check_otp(v: int) -> int:
    if not (100000 <= v <= 999999):
        raise ValueError("OTP code must be a 6-digit number.")
    return v



class UserCreate(BaseModel):
    username: str
    email: EmailStr
    password: str
    confirm_password: str


    @field_validator('password')
    @classmethod
    def password_strength_check(cls, v):
        return _check_password_strength(v)


    @field_validator('username')
    @classmethod
    def username_min_length(cls, v):
        if len(v.strip()) < 3:
            raise ValueError('Username must be at least 3 characters')
        return v.strip()




class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp_code: int


    @field_validator('otp_code')
    @classmethod
    def validate_otp_code(cls, v):
        return _check_otp(v)





class OtpRequestResend(BaseModel):
    email: EmailStr





class loginRequest(BaseModel):
    email: EmailStr
    password: str





class forgotPasswordRequest(BaseModel):
    email: EmailStr




class resetOtpRequest(BaseModel):
    email: EmailStr
    otp_code: int

    @field_validator('otp_code')
    @classmethod
    def validate_otp_code(cls, v):
        return _check_otp(v)





class resetPasswordRequest(BaseModel):
    reset_token: str
    new_password: str
    confirm_password: str

    @field_validator('new_password')
    @classmethod
    def password_strength_check(cls, v):
        return _check_password_strength(v)




class UpdateMeRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None




class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

    @field_validator('new_password')
    @classmethod
    def password_strength_check(cls, v):
        return _check_password_strength(v)




class PasswordConfirmRequest(BaseModel):
    password: str





class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    is_verified: bool
    is_active: bool
    is_blocked: bool

    model_config = ConfigDict(from_attributes=True)





class RegisterResponse(BaseModel):
    message: str
    email: EmailStr
    otp_expires_in_minute: int






class TokenResponse(BaseModel):
    access_token : str
    token_type: str = 'bearer'
    user: UserResponse
