from pydantic import BaseModel, ConfigDict
from uuid import UUID
from datetime import datetime


class CustomerCreate(BaseModel):
    name: str
    email: str
    phone_number: str | None = None


class CustomerSchema(BaseModel):
    id: UUID
    name: str
    email: str
    phone_number: str | None = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
