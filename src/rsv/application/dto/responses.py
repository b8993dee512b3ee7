from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class OperatingWindowResponse(BaseModel):
    startTime: str
    endTime: str
    lastArrivalTime: str
    isSpecial: bool
    label: str | None = None


class SlotsResponse(BaseModel):
    date: dt.date
    window: OperatingWindowResponse
    slots: list[str] = Field(default_factory=list)


class TableResponse(BaseModel):
    tableId: str
    tableNumber: int
    floor: str
    capacityMin: int
    capacityMax: int
    isVip: bool
    isActive: bool
    combinableWith: list[int] = Field(default_factory=list)
    description: str | None = None
    features: list[str] = Field(default_factory=list)


class TableListResponse(BaseModel):
    tables: list[TableResponse] = Field(default_factory=list)


class CandidateResponse(BaseModel):
    candidateId: str
    kind: str
    tableIds: list[str]
    tableNumbers: list[int]
    floor: str
    capacityMin: int
    capacityMax: int
    isVip: bool
    description: str | None = None
    features: list[str] = Field(default_factory=list)


class AvailabilityResponse(BaseModel):
    date: dt.date
    partySize: int
    candidates: list[CandidateResponse] = Field(default_factory=list)


class DayAvailabilityResponse(BaseModel):
    date: dt.date
    window: OperatingWindowResponse
    totalTables: int
    bookedTableNumbers: list[int] = Field(default_factory=list)
    blockedTableNumbers: list[int] = Field(default_factory=list)
    availableTableNumbers: list[int] = Field(default_factory=list)
    canCombineTables: bool


class TableAvailabilityResponse(BaseModel):
    tableId: str
    date: dt.date
    available: bool


class ReservationResponse(BaseModel):
    reservationId: str
    reference: str
    tableId: str
    combinedTableId: str | None = None
    customerId: str
    date: dt.date
    timeSlot: str
    partySize: int
    status: str
    deposit: MoneyResponse
    depositPaid: bool
    depositRefunded: bool
    refundAmount: MoneyResponse | None = None
    refundDate: dt.datetime | None = None
    specialRequests: str | None = None
    createdAt: dt.datetime
    updatedAt: dt.datetime


class ModificationResponse(BaseModel):
    modificationId: str
    reservationId: str
    actor: str
    previousValues: dict[str, Any] = Field(default_factory=dict)
    newValues: dict[str, Any] = Field(default_factory=dict)
    reason: str | None = None
    notificationSent: bool
    createdAt: dt.datetime


class ModificationListResponse(BaseModel):
    modifications: list[ModificationResponse] = Field(default_factory=list)


class RefundDetailsResponse(BaseModel):
    refundReference: str | None = None
    amount: MoneyResponse
    status: str | None = None
    refundedAt: dt.datetime


class RefundResponse(BaseModel):
    refund: RefundDetailsResponse
    reservation: ReservationResponse


class TableBlockResponse(BaseModel):
    blockId: str
    tableId: str
    startDate: dt.date
    endDate: dt.date
    reason: str | None = None
    createdBy: str
    createdAt: dt.datetime


class TableBlockListResponse(BaseModel):
    blocks: list[TableBlockResponse] = Field(default_factory=list)
