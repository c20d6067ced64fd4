"""Booking data models and table row conversion."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class BookingStatus(str, Enum):
    """Server-driven booking lifecycle. Only PENDING bookings may be cancelled."""
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"


class VehicleType(str, Enum):
    HATCHBACK = "Hatchback"
    SEDAN = "Sedan"
    SUV = "SUV"
    MUV = "MUV"
    LUXURY = "Luxury"


class BookingDraft(BaseModel):
    """Fields supplied by the caller when creating a booking."""
    service_name: str
    vehicle_type: str
    vehicle_number: Optional[str] = None
    address: str
    preferred_date_time: str
    notes: Optional[str] = None
    total_amount: Optional[float] = None


class Booking(BaseModel):
    """Booking record as stored remotely and cached client-side."""
    id: str
    owner_id: str
    service_name: str
    vehicle_type: str
    vehicle_number: Optional[str] = None
    address: str
    preferred_date_time: str
    booking_date: Optional[datetime] = None
    notes: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    total_amount: Optional[float] = None
    created_at: datetime

    @property
    def is_cancellable(self) -> bool:
        return self.status == BookingStatus.PENDING

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Booking":
        """Build from a booking table row (snake_case columns, ``user_id`` owner)."""
        return cls(
            id=str(row["id"]),
            owner_id=str(row["user_id"]),
            service_name=row["service_name"],
            vehicle_type=row["vehicle_type"],
            vehicle_number=row.get("vehicle_number"),
            address=row["address"],
            preferred_date_time=row["preferred_date_time"],
            booking_date=row.get("booking_date"),
            notes=row.get("notes"),
            status=row.get("status") or BookingStatus.PENDING,
            total_amount=row.get("total_amount"),
            created_at=row["created_at"],
        )
