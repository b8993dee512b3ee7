from __future__ import annotations

from rsv.application.dto.responses import ModificationListResponse, ReservationResponse
from rsv.application.mappers.reservation_mapper import (
    to_modification_response,
    to_reservation_response,
)
from rsv.application.ports.repositories import ReservationRepository
from rsv.domain.common.ids import ReservationId
from rsv.domain.reservation.entities import Reservation


class ReservationNotFoundError(Exception):
    pass


class ReservationChangedError(Exception):
    """Another request updated the reservation between read and write."""


def load_reservation(
    reservation_repository: ReservationRepository,
    reservation_id: ReservationId,
) -> Reservation:
    reservation = reservation_repository.get(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError(f"reservation {reservation_id} not found")
    return reservation


class GetReservation:
    def __init__(self, reservation_repository: ReservationRepository) -> None:
        self._reservation_repository = reservation_repository

    def execute(self, reservation_id: ReservationId) -> ReservationResponse:
        return to_reservation_response(
            load_reservation(self._reservation_repository, reservation_id)
        )

    def by_reference(self, reference: str) -> ReservationResponse:
        reservation = self._reservation_repository.get_by_reference(reference.strip().upper())
        if reservation is None:
            raise ReservationNotFoundError(f"reservation {reference} not found")
        return to_reservation_response(reservation)


class ListModifications:
    def __init__(self, reservation_repository: ReservationRepository) -> None:
        self._reservation_repository = reservation_repository

    def execute(self, reservation_id: ReservationId) -> ModificationListResponse:
        load_reservation(self._reservation_repository, reservation_id)
        modifications = self._reservation_repository.list_modifications(reservation_id)
        return ModificationListResponse(
            modifications=[to_modification_response(item) for item in modifications]
        )
