from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from equiptrak.core.authorization import get_company_or_404
from equiptrak.core.security import get_current_user
from equiptrak.db import models
from equiptrak.db.session import get_db

router = APIRouter(tags=["Equipment"])


class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    serial_number: str = Field(..., min_length=1)
    status: str | None = None
    type: str | None = None
    equipment_type_id: str | None = None
    last_test_date: date | None = None
    next_test_date: date | None = None
    location: str | None = None
    manufacturer: str | None = None
    notes: str | None = None


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _to_response(equipment: models.Equipment) -> dict:
    equipment_type = equipment.equipment_type
    return {
        "id": equipment.id,
        "name": equipment.name,
        "serial_number": equipment.serial_number,
        "company_id": equipment.company_id,
        "status": equipment.status,
        "type": equipment.type,
        "last_test_date": _iso(equipment.last_test_date),
        "next_test_date": _iso(equipment.next_test_date),
        "created_at": _iso(equipment.created_at),
        "updated_at": _iso(equipment.updated_at),
        "location": equipment.location,
        "manufacturer": equipment.manufacturer,
        "notes": equipment.notes,
        "equipment_types": (
            {"name": equipment_type.name, "description": equipment_type.description}
            if equipment_type
            else None
        ),
    }


@router.get("/companies/{company_id}/equipment")
def list_equipment(
    company_id: str,
    type: str | None = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_company_or_404(db, current_user, company_id)
    query = (
        db.query(models.Equipment)
        .outerjoin(models.EquipmentType, models.EquipmentType.id == models.Equipment.equipment_type_id)
        .filter(models.Equipment.company_id == company_id)
    )
    if type:
        query = query.filter(or_(models.Equipment.type == type, models.EquipmentType.name == type))
    equipment = query.order_by(models.Equipment.name.asc()).all()
    return [_to_response(item) for item in equipment]


@router.post("/companies/{company_id}/equipment", status_code=status.HTTP_201_CREATED)
def create_equipment(
    company_id: str,
    payload: EquipmentCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_company_or_404(db, current_user, company_id)
    if payload.equipment_type_id:
        equipment_type = db.get(models.EquipmentType, payload.equipment_type_id)
        if not equipment_type:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Equipment type not found")
    equipment = models.Equipment(company_id=company_id, **payload.model_dump())
    if not equipment.status:
        equipment.status = "active"
    db.add(equipment)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Serial number already registered for this company",
        )
    db.refresh(equipment)
    return _to_response(equipment)
