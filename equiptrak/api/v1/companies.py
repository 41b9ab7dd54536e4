import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from equiptrak.core.authorization import get_company_or_404, is_admin_user
from equiptrak.core.security import get_current_user, require_admin
from equiptrak.db import models
from equiptrak.db.session import get_db

router = APIRouter(tags=["Companies"])
logger = logging.getLogger("equiptrak.api")


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    address: str | None = None
    city: str | None = None
    postcode: str | None = None
    telephone: str | None = None
    email: str | None = None


class CompanyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    address: str | None = None
    city: str | None = None
    postcode: str | None = None
    telephone: str | None = None
    email: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        if value is None:
            raise ValueError("name cannot be null")
        return value


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _to_response(company: models.Company) -> dict:
    return {
        "id": company.id,
        "name": company.name,
        # older frontends read company_name
        "company_name": company.name,
        "address": company.address,
        "city": company.city,
        "postcode": company.postcode,
        "telephone": company.telephone,
        "email": company.email,
        "created_at": _iso(company.created_at),
        "updated_at": _iso(company.updated_at),
    }


@router.get("/companies")
def list_companies(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(models.Company)
    if not is_admin_user(current_user):
        if not current_user.company_id:
            return []
        query = query.filter(models.Company.id == current_user.company_id)
    return [_to_response(company) for company in query.order_by(models.Company.name.asc()).all()]


@router.get("/companies/{company_id}")
def get_company(
    company_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_response(get_company_or_404(db, current_user, company_id))


@router.post("/companies", status_code=status.HTTP_201_CREATED)
def create_company(
    payload: CompanyCreate,
    current_user: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    company = models.Company(**payload.model_dump())
    db.add(company)
    db.commit()
    db.refresh(company)
    logger.info("company created id=%s by=%s", company.id, current_user.email)
    return _to_response(company)


@router.put("/companies/{company_id}")
def update_company(
    company_id: str,
    payload: CompanyUpdate,
    current_user: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    company = get_company_or_404(db, current_user, company_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(company, field, value)
    db.commit()
    db.refresh(company)
    return _to_response(company)


@router.delete("/companies/{company_id}")
def delete_company(
    company_id: str,
    current_user: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    company = get_company_or_404(db, current_user, company_id)
    if company.users:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Company still has users assigned",
        )
    db.delete(company)
    db.commit()
    logger.info("company deleted id=%s by=%s", company_id, current_user.email)
    return {"message": "Company deleted successfully"}
