from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
        
    PROJECT_NAME: str = 'chato'
    ENV: str = 'dev'
    DATABASE_URL : str
    
    SECRET_KEY : str
    ALGORITHM : str='HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int=1000
    
    OTP_EXPIRE_MINUTES: int=10
    RESET_OTP_EXPIRE_MINUTES: int=10
    RESET_OTP_MAX_ATTEMPTS: int=20
    OTP_MAX_ATTEMPTS: int=20
    
    
    ADMIN_EMAIL: str
    ADMIN_PASSWORD: str
    
    EMAIL_HOST: str
    EMAIL_PORT: int=587
    EMAIL_SECURE: bool=False
    EMAIL_USER: str
    EMAIL_PASSWORD: str
    EMAIL_FROM: str
    
    CLOUDINARY_CLOUD_NAME: str
    CLOUDINARY_API_KEY: str
    CLOUDINARY_API_SECRET: str
    CLOUDINARY_FOLDER: str='attachments'
    
    ATTACHMENT_WIDTH: int=1024
    ATTACHMENT_HEIGHT: int=1024
    ATTACHMENT_FORMAT: str='png'
    MAX_ATTACHMENTS: int=5
    
    LOG_LEVEL: str='INFO'
    LOG_FILE: str | None = None
    
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')
        
settings = Settings()
