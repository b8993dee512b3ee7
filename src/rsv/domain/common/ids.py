from __future__ import annotations

from typing import NewType

TableId = NewType("TableId", str)
TableBlockId = NewType("TableBlockId", str)
CustomerId = NewType("CustomerId", str)
ReservationId = NewType("ReservationId", str)
ModificationId = NewType("ModificationId", str)
