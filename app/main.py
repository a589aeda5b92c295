from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.errors import AppError
from app.core.logger import logger
from app.core.startup import ensure_admin_user
from app.database import init_db
from app.api.routes import auth, users, admin, chat, messages
from app.schemas.CommonResponse import fail


app = FastAPI(title=settings.PROJECT_NAME)

def format_errors(errors):
    messages = []
    for e in errors:
        msg = e.get("msg", "Invalid input")
        messages.append(msg)
    return messages




@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(exc.message, exc.status_code).model_dump()
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=fail(
            "Validation failed",
            status.HTTP_400_BAD_REQUEST,
            {"errors": format_errors(exc.errors())}
        ).model_dump()
    )


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=fail(
            "Validation failed",
            status.HTTP_400_BAD_REQUEST,
            {"errors": format_errors(exc.errors())}
        ).model_dump()
    )


@app.middleware("http")
async def log_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception", extra={"path": str(request.url)})
        raise


@app.on_event("startup")
async def startup():
    logger.info(f"Starting {settings.PROJECT_NAME}")
    init_db()
    ensure_admin_user()




app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)





app.include_router(auth.router)
app.include_router(users.router)
app.include_router(admin.router)
app.include_router(chat.router)
app.include_router(messages.router)





@app.get("/root")
async def root():
    return {"message": "Backend running..."}
