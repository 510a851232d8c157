"""Pydantic request models for the JSON API and the registration form."""

from datetime import date
from typing import Annotated, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StrictInt,
    StringConstraints,
)
from pydantic.alias_generators import to_camel

from .models import TASK_STATUSES, USER_ROLES


def _clean_text(value):
    if isinstance(value, str):
        return value.strip() or None
    return value


def _date_part(value):
    # '2024-03-17T10:30:00.000Z' -> '2024-03-17'
    if isinstance(value, str) and 'T' in value:
        return value.split('T', 1)[0]
    return value


def _pending_if_null(value):
    return 'pending' if value is None else value


RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
OptionalText = Annotated[Optional[str], BeforeValidator(_clean_text)]
Email = Annotated[EmailStr, AfterValidator(str.lower)]
ServiceDate = Annotated[date, BeforeValidator(_date_part)]
OptionalDate = Annotated[Optional[date], BeforeValidator(_date_part), BeforeValidator(_clean_text)]
TaskStatus = Annotated[Literal[TASK_STATUSES], BeforeValidator(_pending_if_null)]
UserRole = Literal[USER_ROLES]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FirstTimerUpdate(CamelModel):
    """Partial update: only keys present in the body are applied.

    Required columns default to None but are typed non-nullable, so an
    explicit null for them is rejected.
    """

    first_name: RequiredText = None
    last_name: RequiredText = None
    email: Email = None
    phone_number: RequiredText = None
    service_date: ServiceDate = None
    address: OptionalText = None
    city: OptionalText = None
    gender: OptionalText = None
    heard_from: OptionalText = None
    visiting_member: bool = None
    is_student: bool = None
    school: OptionalText = None
    prayer_request: OptionalText = None
    date_of_birth: OptionalDate = None


class FirstTimerIn(FirstTimerUpdate):
    first_name: RequiredText
    last_name: RequiredText
    email: Email
    phone_number: RequiredText
    service_date: ServiceDate
    visiting_member: bool = False
    is_student: bool = False


class FollowUpTaskFields(CamelModel):
    status: TaskStatus = 'pending'
    notes: OptionalText = None
    assigned_to: OptionalText = None
    due_date: OptionalDate = None


class FollowUpTaskIn(FollowUpTaskFields):
    first_timer_id: StrictInt


class FollowUpTaskUpdate(FollowUpTaskFields):
    first_timer_id: StrictInt = None
    status: TaskStatus = None


class RegisterIn(CamelModel):
    email: Email
    password: str = Field(min_length=1)
    first_name: RequiredText
    last_name: RequiredText


class UserIn(RegisterIn):
    role: UserRole = 'user'


class LoginIn(CamelModel):
    email: str = ''
    password: str = ''


def load(schema, data):
    """Validate a decoded request body; anything but a matching object raises ValidationError."""
    return schema.model_validate({} if data is None else data)


def changes(model):
    """Column values explicitly sent in the body, keyed by attribute name."""
    return model.model_dump(exclude_unset=True)


def validation_message(exc):
    parts = []
    for err in exc.errors():
        field = '.'.join(str(p) for p in err['loc']) or 'body'
        parts.append(f"{field}: {err['msg']}")
    return '; '.join(parts)
