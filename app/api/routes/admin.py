from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.models.auth import User
from app.api.deps import require_admin
from app.core.errors import ForbiddenError, NotFoundError
from app.core.logger import logger
from app.schemas.CommonResponse import ApiResponse, PaginatedResponse, PageMeta, BlockRequest, ok
from app.schemas.auth import UserResponse



router = APIRouter(prefix='/admin', tags=['Admin'])




@router.get('/users', response_model=ApiResponse[PaginatedResponse[List[UserResponse]]])
def get_users(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100), current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    total_users = db.query(User).count()
    offset = (page - 1) * limit
    users = db.query(User).order_by(User.id.asc()).offset(offset).limit(limit).all()

    meta = PageMeta(
        page=page,
        limit=limit,
        total=total_users,
        pages=(total_users + limit - 1) // limit,
        has_next=page * limit < total_users,
        has_previous=page > 1,
    )

    return ok(
        "Users retrieved successfully" if total_users else "No users found",
        PaginatedResponse(
            data=[UserResponse.model_validate(user) for user in users],
            meta=meta
        )
    )





@router.get('/users/{user_id}', response_model=ApiResponse[UserResponse])
def get_user_details(user_id: int, current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')

    return ok("User details retrieved successfully", UserResponse.model_validate(user))






@router.patch('/users/{user_id}/block', response_model=ApiResponse[UserResponse])
def block_or_unblock_user(user_id: int, payload: BlockRequest, current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')

    if user.role == 'admin':
        raise ForbiddenError('Cannot block/unblock an admin user')

    user.is_blocked = payload.is_blocked
    db.commit()
    db.refresh(user)
    action = "blocked" if payload.is_blocked else "unblocked"
    logger.info(f"Admin {current_user.id} {action} user {user.id}")
    return ok(f"User {action} successfully", UserResponse.model_validate(user))
