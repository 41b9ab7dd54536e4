from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from equiptrak.core.authorization import get_company_or_404, get_conversation_or_404
from equiptrak.core.security import get_current_user
from equiptrak.db import models
from equiptrak.db.session import get_db

router = APIRouter(tags=["Conversations"])


class ConversationCreate(BaseModel):
    company_id: str = Field(..., min_length=1)
    subject: str | None = None
    participant_ids: list[str] = Field(default_factory=list)


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _conversation_response(conversation: models.Conversation) -> dict:
    return {
        "id": conversation.id,
        "company_id": conversation.company_id,
        "subject": conversation.subject,
        "status": conversation.status,
        "created_at": _iso(conversation.created_at),
        "updated_at": _iso(conversation.updated_at),
    }


def _participant_response(participant: models.ConversationParticipant) -> dict:
    return {
        "id": participant.id,
        "conversation_id": participant.conversation_id,
        "user_id": participant.user_id,
        "joined_at": _iso(participant.joined_at),
    }


def _message_response(message: models.Message) -> dict:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "created_at": _iso(message.created_at),
    }


@router.get("/conversations")
def list_conversations(
    company_id: str,
    status: str | None = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_company_or_404(db, current_user, company_id)
    query = db.query(models.Conversation).filter(models.Conversation.company_id == company_id)
    if status:
        query = query.filter(models.Conversation.status == status)
    conversations = query.order_by(models.Conversation.updated_at.desc()).all()
    return [_conversation_response(item) for item in conversations]


@router.post("/conversations", status_code=status.HTTP_201_CREATED)
def create_conversation(
    payload: ConversationCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_company_or_404(db, current_user, payload.company_id)
    conversation = models.Conversation(company_id=payload.company_id, subject=payload.subject, status="open")
    user_ids = [current_user.id] + [uid for uid in payload.participant_ids if uid != current_user.id]
    for user_id in dict.fromkeys(user_ids):
        if not db.get(models.User, user_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User not found: {user_id}")
        conversation.participants.append(models.ConversationParticipant(user_id=user_id))
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return _conversation_response(conversation)


@router.get("/conversations/{conversation_id}/participants")
def list_participants(
    conversation_id: str,
    company_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_conversation_or_404(db, current_user, conversation_id, company_id)
    participants = (
        db.query(models.ConversationParticipant)
        .filter(models.ConversationParticipant.conversation_id == conversation_id)
        .order_by(models.ConversationParticipant.joined_at.asc())
        .all()
    )
    return [_participant_response(item) for item in participants]


@router.get("/conversations/{conversation_id}/messages")
def list_messages(
    conversation_id: str,
    company_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_conversation_or_404(db, current_user, conversation_id, company_id)
    messages = (
        db.query(models.Message)
        .filter(models.Message.conversation_id == conversation_id)
        .order_by(models.Message.created_at.asc())
        .all()
    )
    return [_message_response(item) for item in messages]


@router.post("/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
def create_message(
    conversation_id: str,
    company_id: str,
    payload: MessageCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = get_conversation_or_404(db, current_user, conversation_id, company_id)
    if conversation.status == "closed":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conversation is closed")
    message = models.Message(conversation_id=conversation.id, sender_id=current_user.id, content=payload.content)
    db.add(message)
    conversation.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(message)
    return _message_response(message)
