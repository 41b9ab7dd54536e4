from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class Resource(BaseModel):
    model_config = ConfigDict(extra="ignore")


class EquipmentTypeInfo(Resource):
    name: str
    description: str | None = None


class Equipment(Resource):
    id: str
    name: str
    serial_number: str
    company_id: str | None = None
    status: str | None = None
    type: str | None = None
    last_test_date: date | None = None
    next_test_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    location: str | None = None
    manufacturer: str | None = None
    notes: str | None = None
    equipment_types: EquipmentTypeInfo | None = None


class ServiceRecord(Resource):
    id: str
    company_id: str
    equipment_id: str | None = None
    certificate_number: str | None = None
    service_date: date
    retest_date: date | None = None
    engineer_name: str | None = None
    status: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Conversation(Resource):
    id: str
    company_id: str
    subject: str | None = None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ConversationParticipant(Resource):
    id: str
    conversation_id: str
    user_id: str
    joined_at: datetime | None = None


class Message(Resource):
    id: str
    conversation_id: str
    sender_id: str | None = None
    content: str
    created_at: datetime | None = None


UserRole = Literal["admin", "user"]


class AuthSession(Resource):
    id: str
    email: str
    role: UserRole
    token: str
    first_name: str | None = None
    last_name: str | None = None
    company_id: str | None = None
