import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from equiptrak.core.authorization import enforce_company_scope, get_company_or_404
from equiptrak.core.security import get_current_user
from equiptrak.db import models
from equiptrak.db.session import get_db
from equiptrak.services.certificates import next_certificate_number
from equiptrak.services.retest import compute_retest_date

router = APIRouter(tags=["Service records"])
logger = logging.getLogger("equiptrak.api")


class ServiceRecordCreate(BaseModel):
    company_id: str = Field(..., min_length=1)
    service_date: date
    retest_date: date | None = None
    engineer_name: str = Field(..., min_length=1)
    equipment_id: str | None = None
    status: str | None = None
    notes: str | None = None


class ServiceRecordUpdate(BaseModel):
    service_date: date | None = None
    retest_date: date | None = None
    engineer_name: str | None = None
    equipment_id: str | None = None
    status: str | None = None
    notes: str | None = None

    @field_validator("service_date", "status")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


# concurrent creates can compute the same certificate number
CERTIFICATE_ATTEMPTS = 3


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _to_response(record: models.ServiceRecord) -> dict:
    return {
        "id": record.id,
        "company_id": record.company_id,
        "equipment_id": record.equipment_id,
        "certificate_number": record.certificate_number,
        "service_date": _iso(record.service_date),
        "retest_date": _iso(record.retest_date),
        "engineer_name": record.engineer_name,
        "status": record.status,
        "notes": record.notes,
        "created_at": _iso(record.created_at),
        "updated_at": _iso(record.updated_at),
    }


def _get_record_or_404(db: Session, user: models.User, record_id: str) -> models.ServiceRecord:
    record = db.get(models.ServiceRecord, record_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service record not found")
    enforce_company_scope(user, record.company_id)
    return record


@router.get("/service-records")
def list_service_records(
    company_id: str,
    status: str | None = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_company_or_404(db, current_user, company_id)
    query = db.query(models.ServiceRecord).filter(models.ServiceRecord.company_id == company_id)
    if status:
        query = query.filter(models.ServiceRecord.status == status)
    records = query.order_by(models.ServiceRecord.service_date.desc()).all()
    return [_to_response(record) for record in records]


@router.get("/service-records/{record_id}")
def get_service_record(
    record_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_response(_get_record_or_404(db, current_user, record_id))


@router.post("/service-records", status_code=status.HTTP_201_CREATED)
def create_service_record(
    payload: ServiceRecordCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_company_or_404(db, current_user, payload.company_id)
    if payload.equipment_id:
        equipment = db.get(models.Equipment, payload.equipment_id)
        if not equipment or equipment.company_id != payload.company_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Equipment not found")
    for attempt in range(1, CERTIFICATE_ATTEMPTS + 1):
        record = models.ServiceRecord(
            company_id=payload.company_id,
            equipment_id=payload.equipment_id,
            service_date=payload.service_date,
            retest_date=payload.retest_date or compute_retest_date(payload.service_date),
            engineer_name=payload.engineer_name,
            certificate_number=next_certificate_number(db),
            status=payload.status or "pending",
            notes=payload.notes or "",
        )
        db.add(record)
        try:
            db.commit()
            break
        except IntegrityError:
            db.rollback()
            logger.warning("certificate %s already taken (attempt %d)", record.certificate_number, attempt)
    else:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Could not allocate a certificate number, please retry",
        )
    db.refresh(record)
    logger.info("service record created id=%s certificate=%s", record.id, record.certificate_number)
    return _to_response(record)


@router.put("/service-records/{record_id}")
def update_service_record(
    record_id: str,
    payload: ServiceRecordUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    record = _get_record_or_404(db, current_user, record_id)
    # retest_date only changes when sent explicitly
    updates = payload.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(record, field, value)
    db.commit()
    db.refresh(record)
    return _to_response(record)


@router.delete("/service-records/{record_id}")
def delete_service_record(
    record_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    record = _get_record_or_404(db, current_user, record_id)
    db.delete(record)
    db.commit()
    return {"message": "Service record deleted successfully"}
