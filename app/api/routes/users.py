from fastapi import APIRouter, Depends, status
from typing import List
from sqlalchemy import select
from sqlalchemy.orm import Session
from app.database import TransactionScope, get_db
from app.api.deps import get_current_user, get_message_lifecycle
from app.core.errors import BadRequestError, ForbiddenError
from app.core.logger import logger
from app.core.security import create_access_token, hash_password, verify_password
from app.models.auth import User
from app.models.message import Attachment, Message
from app.schemas.CommonResponse import ApiResponse, ok
from app.schemas.auth import PasswordConfirmRequest, UpdateMeRequest, UpdatePasswordRequest, UserResponse
from app.services import blocks
from app.services.messages import MessageLifecycle


router = APIRouter(prefix='/users', tags=['Users'])




@router.get('/me', response_model=ApiResponse[UserResponse])
def me(current_user: User = Depends(get_current_user)):
    return ok('Data was retrieved successfully', UserResponse.model_validate(current_user))





@router.patch('/me', response_model=ApiResponse[UserResponse])
def update_me(data: UpdateMeRequest, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    fields = {key: value for key, value in data.model_dump().items() if value}
    if not fields:
        raise BadRequestError('Please provide some information to change')

    for key, value in fields.items():
        setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)

    return ok('Your data was updated successfully', UserResponse.model_validate(current_user))





@router.post('/me/password', response_model=ApiResponse[dict])
def update_password(data: UpdatePasswordRequest, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not verify_password(data.current_password, current_user.hashed_password):
        raise ForbiddenError('Incorrect password')

    if data.new_password == data.current_password:
        raise BadRequestError("New password can't be the same as the current one")

    if data.new_password != data.confirm_password:
        raise BadRequestError('Passwords are different')

    current_user.hashed_password = hash_password(data.new_password)
    db.commit()

    return ok(
        'Your password was successfully updated',
        {'access_token': create_access_token(current_user.id, current_user.role)},
    )





@router.post('/me/deactivate', status_code=status.HTTP_204_NO_CONTENT)
def deactivate(data: PasswordConfirmRequest, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not verify_password(data.password, current_user.hashed_password):
        raise BadRequestError('Incorrect password')

    current_user.is_active = False
    db.commit()
    logger.info(f"User {current_user.id} deactivated their account")





@router.post('/me/delete', status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    data: PasswordConfirmRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    if not verify_password(data.password, current_user.hashed_password):
        raise BadRequestError('Incorrect password')

    user_id = current_user.id
    with TransactionScope(db) as tx:
        # messages and their attachments go with the user through FK cascades
        public_ids = db.execute(
            select(Attachment.public_id)
            .join(Message, Message.id == Attachment.message_id)
            .where(Message.sender_id == user_id, Attachment.public_id.is_not(None))
        ).scalars().all()
        lifecycle.purge_left_behind(tx, user_id)
        db.delete(current_user)
        for public_id in public_ids:
            tx.after_commit(lambda public_id=public_id: lifecycle.media.remove(public_id))

    logger.info(f"User {user_id} deleted their account")





@router.get('/blocks', response_model=ApiResponse[List[UserResponse]])
def get_block_list(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    users = blocks.blocked_by(db, current_user.id)
    return ok('Block list retrieved successfully', [UserResponse.model_validate(u) for u in users])





@router.post('/{user_id}/block', response_model=ApiResponse[dict], status_code=status.HTTP_201_CREATED)
def block_user(user_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    with TransactionScope(db) as tx:
        blocks.block(tx.session, current_user.id, user_id)
    return ok('User was blocked successfully', {'blocked_id': user_id}, status.HTTP_201_CREATED)





@router.delete('/{user_id}/block', status_code=status.HTTP_204_NO_CONTENT)
def unblock_user(user_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    with TransactionScope(db) as tx:
        blocks.unblock(tx.session, current_user.id, user_id)
