from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class CustomerDetailsRequest(CamelBaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = Field(default=None, max_length=40)


class DepositIntentRequest(CamelBaseModel):
    captured: bool = False
    payment_reference: str | None = None


class CreateReservationRequest(CamelBaseModel):
    table_id: str
    date: dt.date
    time_slot: str
    party_size: int = Field(ge=1)
    customer: CustomerDetailsRequest
    deposit: DepositIntentRequest = Field(default_factory=DepositIntentRequest)
    special_requests: str | None = Field(default=None, max_length=1000)


class ModifyReservationRequest(CamelBaseModel):
    date: dt.date | None = None
    time_slot: str | None = None
    party_size: int | None = Field(default=None, ge=1)
    table_id: str | None = None
    reason: str | None = Field(default=None, max_length=500)
    notify: bool = False


class CancelReservationRequest(CamelBaseModel):
    reason: str | None = Field(default=None, max_length=500)
    notify: bool = True


class RefundReservationRequest(CamelBaseModel):
    amount_cents: int | None = Field(default=None, ge=1)
    reason: str | None = Field(default=None, max_length=500)
    notify: bool = True


class ConfirmDepositRequest(CamelBaseModel):
    payment_reference: str = Field(min_length=1)


class StatusChangeRequest(CamelBaseModel):
    reason: str | None = Field(default=None, max_length=500)


class CreateTableBlockRequest(CamelBaseModel):
    table_id: str
    start_date: dt.date
    end_date: dt.date
    reason: str | None = Field(default=None, max_length=500)
