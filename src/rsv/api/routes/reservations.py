from __future__ import annotations

from fastapi import APIRouter, status
from opentelemetry import trace

from rsv.api.middleware.request_id import get_actor, get_request_id
from rsv.application.dto.requests import (
    CancelReservationRequest,
    ConfirmDepositRequest,
    CreateReservationRequest,
    ModifyReservationRequest,
    RefundReservationRequest,
    StatusChangeRequest,
)
from rsv.application.dto.responses import (
    ModificationListResponse,
    RefundResponse,
    ReservationResponse,
)
from rsv.application.use_cases.availability import AvailabilityResolver
from rsv.application.use_cases.cancel_reservation import CancelReservation
from rsv.application.use_cases.context import TraceContext
from rsv.application.use_cases.create_reservation import CreateReservation
from rsv.application.use_cases.get_reservation import GetReservation, ListModifications
from rsv.application.use_cases.modify_reservation import ModifyReservation
from rsv.application.use_cases.refund_reservation import RefundReservation
from rsv.application.use_cases.reservation_status import ReservationStatusService
from rsv.domain.common.ids import ReservationId
from rsv.infrastructure.config.settings import booking_policy_from_env, get_calendar
from rsv.infrastructure.db.repositories.block_repo import SqlAlchemyTableBlockRepository
from rsv.infrastructure.db.repositories.customer_repo import SqlAlchemyCustomerDirectory
from rsv.infrastructure.db.repositories.payment_log_repo import SqlAlchemyPaymentLogRepository
from rsv.infrastructure.db.repositories.reservation_repo import SqlAlchemyReservationRepository
from rsv.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository
from rsv.infrastructure.messaging.redis_publisher import RedisEventPublisher
from rsv.infrastructure.payments.stripe_gateway import StripeRefundGateway

router = APIRouter(tags=["reservations"])


def _current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def _trace_context() -> TraceContext:
    return TraceContext(
        trace_id=_current_trace_id(),
        request_id=get_request_id(),
        actor=get_actor(),
    )


def _resolver(reservation_repository: SqlAlchemyReservationRepository) -> AvailabilityResolver:
    return AvailabilityResolver(
        table_repository=SqlAlchemyTableRepository(),
        block_repository=SqlAlchemyTableBlockRepository(),
        reservation_repository=reservation_repository,
    )


def _create_reservation_use_case() -> CreateReservation:
    reservation_repository = SqlAlchemyReservationRepository()
    return CreateReservation(
        resolver=_resolver(reservation_repository),
        reservation_repository=reservation_repository,
        customer_directory=SqlAlchemyCustomerDirectory(),
        publisher=RedisEventPublisher(),
        calendar=get_calendar(),
        policy=booking_policy_from_env(),
    )


def _modify_reservation_use_case() -> ModifyReservation:
    reservation_repository = SqlAlchemyReservationRepository()
    return ModifyReservation(
        resolver=_resolver(reservation_repository),
        reservation_repository=reservation_repository,
        customer_directory=SqlAlchemyCustomerDirectory(),
        publisher=RedisEventPublisher(),
        calendar=get_calendar(),
        policy=booking_policy_from_env(),
    )


def _cancel_reservation_use_case() -> CancelReservation:
    return CancelReservation(
        reservation_repository=SqlAlchemyReservationRepository(),
        publisher=RedisEventPublisher(),
    )


def _refund_reservation_use_case() -> RefundReservation:
    return RefundReservation(
        reservation_repository=SqlAlchemyReservationRepository(),
        payment_gateway=StripeRefundGateway(),
        payment_log_repository=SqlAlchemyPaymentLogRepository(),
        publisher=RedisEventPublisher(),
    )


def _status_service() -> ReservationStatusService:
    return ReservationStatusService(
        reservation_repository=SqlAlchemyReservationRepository(),
        publisher=RedisEventPublisher(),
    )


def _get_reservation_use_case() -> GetReservation:
    return GetReservation(reservation_repository=SqlAlchemyReservationRepository())


def _list_modifications_use_case() -> ListModifications:
    return ListModifications(reservation_repository=SqlAlchemyReservationRepository())


@router.post(
    "/v1/reservations",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(request_dto: CreateReservationRequest) -> ReservationResponse:
    return _create_reservation_use_case().execute(
        request_dto=request_dto,
        trace_ctx=_trace_context(),
    )


@router.get("/v1/reservations/by-reference/{reference}", response_model=ReservationResponse)
def get_reservation_by_reference(reference: str) -> ReservationResponse:
    return _get_reservation_use_case().by_reference(reference)


@router.get("/v1/reservations/{reservation_id}", response_model=ReservationResponse)
def get_reservation(reservation_id: str) -> ReservationResponse:
    return _get_reservation_use_case().execute(reservation_id=ReservationId(reservation_id))


@router.patch("/v1/reservations/{reservation_id}", response_model=ReservationResponse)
def modify_reservation(
    reservation_id: str,
    request_dto: ModifyReservationRequest,
) -> ReservationResponse:
    return _modify_reservation_use_case().execute(
        reservation_id=ReservationId(reservation_id),
        request_dto=request_dto,
        trace_ctx=_trace_context(),
    )


@router.post("/v1/reservations/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: str,
    request_dto: CancelReservationRequest | None = None,
) -> ReservationResponse:
    return _cancel_reservation_use_case().execute(
        reservation_id=ReservationId(reservation_id),
        request_dto=request_dto or CancelReservationRequest(),
        trace_ctx=_trace_context(),
    )


@router.post("/v1/reservations/{reservation_id}/refund", response_model=RefundResponse)
def refund_reservation(
    reservation_id: str,
    request_dto: RefundReservationRequest | None = None,
) -> RefundResponse:
    return _refund_reservation_use_case().execute(
        reservation_id=ReservationId(reservation_id),
        request_dto=request_dto or RefundReservationRequest(),
        trace_ctx=_trace_context(),
    )


@router.post("/v1/reservations/{reservation_id}/confirm", response_model=ReservationResponse)
def confirm_deposit(
    reservation_id: str,
    request_dto: ConfirmDepositRequest,
) -> ReservationResponse:
    return _status_service().confirm_deposit(
        reservation_id=ReservationId(reservation_id),
        payment_reference=request_dto.payment_reference,
        trace_ctx=_trace_context(),
    )


@router.post("/v1/reservations/{reservation_id}/complete", response_model=ReservationResponse)
def complete_reservation(
    reservation_id: str,
    request_dto: StatusChangeRequest | None = None,
) -> ReservationResponse:
    return _status_service().complete(
        reservation_id=ReservationId(reservation_id),
        trace_ctx=_trace_context(),
        reason=request_dto.reason if request_dto else None,
    )


@router.post("/v1/reservations/{reservation_id}/no-show", response_model=ReservationResponse)
def mark_no_show(
    reservation_id: str,
    request_dto: StatusChangeRequest | None = None,
) -> ReservationResponse:
    return _status_service().mark_no_show(
        reservation_id=ReservationId(reservation_id),
        trace_ctx=_trace_context(),
        reason=request_dto.reason if request_dto else None,
    )


@router.get(
    "/v1/reservations/{reservation_id}/modifications",
    response_model=ModificationListResponse,
)
def list_modifications(reservation_id: str) -> ModificationListResponse:
    return _list_modifications_use_case().execute(reservation_id=ReservationId(reservation_id))
