from fastapi import APIRouter, Depends, HTTPException, Query, Response, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session
from typing import List, Optional
import json
from app.database import SessionLocal, TransactionScope, get_db
from app.api.deps import get_current_user, get_user_from_token
from app.core.errors import AppError
from app.core.logger import logger
from app.core.notifier import manager
from app.models.auth import User
from app.schemas.chat import ConversationOut, GroupConversationCreate, PrivateConversationCreate
from app.schemas.CommonResponse import ApiResponse, ok
from app.services import conversations


router = APIRouter(prefix="/conversations", tags=["Conversations"])



async def ws_error(
    websocket: WebSocket,
    *,
    http_status: int,
    message: str,
    close_code: int = 1008
) -> None:

    try:
        await websocket.send_text(json.dumps({
            "success": False,
            "statusCode": http_status,
            "message": message,
            "data": None
        }))
    finally:
        await websocket.close(code=close_code)





@router.get("", response_model=ApiResponse[List[ConversationOut]])
def get_conversations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    found = conversations.list_for_user(db, current_user.id)
    return ok(
        "Your conversations were retrieved successfully",
        [ConversationOut.model_validate(c) for c in found],
    )




@router.post("/private", response_model=ApiResponse[ConversationOut])
def open_private_conversation(
    payload: PrivateConversationCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    with TransactionScope(db) as tx:
        conversation, created = conversations.create_private(tx.session, current_user.id, payload.user_id)

    status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    response.status_code = status_code
    return ok(
        "Conversation was created successfully" if created else "Conversation already exists",
        ConversationOut.model_validate(conversation),
        status_code,
    )




@router.post("/group", response_model=ApiResponse[ConversationOut], status_code=status.HTTP_201_CREATED)
def create_group_conversation(
    payload: GroupConversationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    with TransactionScope(db) as tx:
        conversation = conversations.create_group(tx.session, current_user.id, payload.title, payload.member_ids)

    return ok(
        "Conversation was created successfully",
        ConversationOut.model_validate(conversation),
        status.HTTP_201_CREATED,
    )





@router.websocket("/ws/{conversation_id}")
async def websocket_endpoint(websocket: WebSocket, conversation_id: int, token: Optional[str] = Query(None)):
    """Push channel for message events of one conversation.

    Messages are sent through the REST endpoints; this socket only receives.
    """

    await websocket.accept()


    if not token:
        await ws_error(
            websocket,
            http_status=status.HTTP_401_UNAUTHORIZED,
            message="Token required"
        )
        return

    db: Session = SessionLocal()
    try:
        try:
            user = get_user_from_token(token, db)
            conversations.authorize(db, conversation_id, user.id)
        except HTTPException as e:
            await ws_error(websocket, http_status=e.status_code, message=str(e.detail))
            return
        except AppError as e:
            await ws_error(websocket, http_status=e.status_code, message=e.message)
            return
        user_id = user.id
    finally:
        db.close()

    await manager.connect(conversation_id, user_id, websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            if raw.strip() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception(f"Socket of user {user_id} in conversation {conversation_id} failed")
    finally:
        manager.disconnect(conversation_id, user_id, websocket)
