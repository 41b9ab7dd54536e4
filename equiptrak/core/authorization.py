from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from equiptrak.db import models


def is_admin_user(user: models.User) -> bool:
    return user.role == "admin"


def enforce_company_scope(user: models.User, company_id: str | None) -> None:
    if is_admin_user(user):
        return
    if not user.company_id or user.company_id != company_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized for this company.",
        )


def get_company_or_404(db: Session, user: models.User, company_id: str) -> models.Company:
    enforce_company_scope(user, company_id)
    company = db.query(models.Company).filter(models.Company.id == company_id).first()
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


def get_conversation_or_404(
    db: Session, user: models.User, conversation_id: str, company_id: str
) -> models.Conversation:
    enforce_company_scope(user, company_id)
    conversation = (
        db.query(models.Conversation)
        .filter(
            models.Conversation.id == conversation_id,
            models.Conversation.company_id == company_id,
        )
        .first()
    )
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation
