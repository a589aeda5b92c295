from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session
from typing import Collection, List, Optional
from datetime import datetime
from app.database import TransactionScope, get_db
from app.api.deps import get_current_user, get_message_lifecycle
from app.core.config import settings
from app.core.errors import BadRequestError
from app.core.notifier import manager
from app.models.auth import User
from app.schemas.chat import MessageList, MessageOut, ReactRequest
from app.schemas.CommonResponse import ApiResponse, ok
from app.services.messages import MessageLifecycle, ReactionOutcome
from app.services import visibility


router = APIRouter(prefix="/conversations/{conversation_id}/messages", tags=["Messages"])



def read_files(files: List[UploadFile]) -> List[bytes]:
    if len(files) > settings.MAX_ATTACHMENTS:
        raise BadRequestError(f"You can upload a maximum of {settings.MAX_ATTACHMENTS} files per message")
    return [f.file.read() for f in files]



def notify(background_tasks: BackgroundTasks, conversation_id: int, event: str, data: dict, exclude: Collection[int] = ()) -> None:
    background_tasks.add_task(manager.broadcast, conversation_id, {
        "success": True,
        "statusCode": status.HTTP_200_OK,
        "message": event,
        "data": data,
    }, exclude)





@router.get("", response_model=ApiResponse[MessageList])
def get_messages(
    conversation_id: int,
    search: Optional[str] = Query(None, description="Only messages whose text contains this value"),
    date: Optional[datetime] = Query(None, description="Only messages created at or after this moment"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    with TransactionScope(db) as tx:
        messages = lifecycle.list_for_conversation(tx, current_user.id, conversation_id, search=search, since=date)
        data = MessageList(messages=[MessageOut.model_validate(m) for m in messages])

    return ok("Your messages were retrieved successfully", data)




@router.get("/{message_id}", response_model=ApiResponse[MessageOut])
def get_message(
    conversation_id: int,
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    with TransactionScope(db) as tx:
        message = MessageOut.model_validate(lifecycle.get_one(tx, current_user.id, conversation_id, message_id))

    return ok("Your message was retrieved successfully", message)




@router.post("", response_model=ApiResponse[MessageOut], status_code=status.HTTP_201_CREATED)
def send_message(
    conversation_id: int,
    background_tasks: BackgroundTasks,
    message: Optional[str] = Form(None),
    replied_message_id: Optional[int] = Form(None),
    files: List[UploadFile] = File([]),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    raw_files = read_files(files)

    with TransactionScope(db) as tx:
        created = lifecycle.create(
            tx,
            current_user.id,
            conversation_id,
            body=message,
            replied_message_id=replied_message_id,
            files=raw_files,
        )
        out = MessageOut.model_validate(created)

    notify(background_tasks, conversation_id, "New message", out.model_dump(mode="json"))
    return ok("Your message was sent successfully", out, status.HTTP_201_CREATED)




@router.put("/{message_id}", response_model=ApiResponse[MessageOut])
def edit_message(
    conversation_id: int,
    message_id: int,
    background_tasks: BackgroundTasks,
    message: Optional[str] = Form(None),
    files: List[UploadFile] = File([]),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    raw_files = read_files(files)

    with TransactionScope(db) as tx:
        edited = lifecycle.edit(tx, current_user.id, conversation_id, message_id, message, raw_files)
        out = MessageOut.model_validate(edited)
        # participants who deleted it for themselves must not see the new content
        hidden_for = visibility.hidden_from(tx.session, message_id)

    notify(background_tasks, conversation_id, "Message edited", out.model_dump(mode="json"), exclude=hidden_for)
    return ok("Your message was edited successfully", out)




@router.patch("/{message_id}", response_model=ApiResponse[dict])
def react_on_message(
    conversation_id: int,
    message_id: int,
    payload: ReactRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    with TransactionScope(db) as tx:
        outcome = lifecycle.react(tx, current_user.id, conversation_id, message_id, payload.reaction)

    if outcome == ReactionOutcome.created:
        response.status_code = status.HTTP_201_CREATED
        return ok("Reaction was added successfully", {"reaction": payload.reaction}, status.HTTP_201_CREATED)

    response.status_code = status.HTTP_202_ACCEPTED
    return ok(
        "Reaction was updated successfully",
        {"reaction": payload.reaction if outcome == ReactionOutcome.updated else None},
        status.HTTP_202_ACCEPTED,
    )




@router.post("/{message_id}/read", response_model=ApiResponse[MessageOut])
def mark_message_read(
    conversation_id: int,
    message_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    with TransactionScope(db) as tx:
        out = MessageOut.model_validate(lifecycle.mark_read(tx, current_user.id, conversation_id, message_id))

    notify(background_tasks, conversation_id, "Message read", {"id": message_id, "reader_id": current_user.id})
    return ok("Message was marked as read", out)




@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    conversation_id: int,
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    with TransactionScope(db) as tx:
        lifecycle.delete(tx, current_user.id, conversation_id, message_id)




@router.delete("/{message_id}/unsend", status_code=status.HTTP_204_NO_CONTENT)
def unsend_message(
    conversation_id: int,
    message_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    lifecycle: MessageLifecycle = Depends(get_message_lifecycle),
):
    with TransactionScope(db) as tx:
        lifecycle.unsend(tx, current_user.id, conversation_id, message_id)

    notify(background_tasks, conversation_id, "Message unsent", {"id": message_id})
