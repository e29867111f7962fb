from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..common.datetime_utils import api_timestamp_to_ticks, date_string_from_ticks
from ..core.enums import AttendanceStatus, PunchDirection, SyncFlag
from ..database.sqlite_base import safe_float, safe_int, safe_parse_json, safe_str, to_json


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True)
class AttendanceRecord:
    """One punch event. ``timestamp`` (UTC epoch millis) is the identity key."""

    timestamp: int
    user_id: str
    punch_direction: PunchDirection
    org_id: Optional[str] = None
    punch_type: Optional[str] = None
    lat_lon: Optional[str] = None
    address: Optional[str] = None
    created_on: Optional[int] = None
    is_synced: SyncFlag = SyncFlag.UNSYNCED
    date_of_punch: Optional[str] = None
    attendance_status: Optional[str] = None
    module_id: Optional[str] = None
    trip_type: Optional[str] = None
    passenger_id: Optional[str] = None
    allowance_data: List[Any] = field(default_factory=list)
    is_checkout_qr_scan: bool = False
    traveler_name: Optional[str] = None
    phone_number: Optional[str] = None
    shift_start_time: Optional[str] = None
    shift_end_time: Optional[str] = None
    minimum_hours_required: Optional[float] = None
    linked_entry_date: Optional[str] = None
    server_timestamp: Optional[int] = None
    approval_required: bool = False

    @property
    def synced(self) -> bool:
        return self.is_synced == SyncFlag.SYNCED

    @property
    def is_in(self) -> bool:
        return self.punch_direction == PunchDirection.IN

    @property
    def is_out(self) -> bool:
        return self.punch_direction == PunchDirection.OUT

    @property
    def is_break_out(self) -> bool:
        return self.is_out and bool((self.attendance_status or "").strip())

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AttendanceRecord":
        allowance = safe_parse_json(row.get("AllowanceData"), default=[])
        direction = str(row.get("PunchDirection") or "IN").upper()
        return cls(
            timestamp=int(row["Timestamp"]),
            user_id=safe_str(row.get("UserID")) or "",
            punch_direction=PunchDirection.OUT if direction == "OUT" else PunchDirection.IN,
            org_id=safe_str(row.get("OrgID")),
            punch_type=safe_str(row.get("PunchType")),
            lat_lon=safe_str(row.get("LatLon")),
            address=safe_str(row.get("Address")),
            created_on=safe_int(row.get("CreatedOn")),
            is_synced=SyncFlag.SYNCED if row.get("IsSynced") == "Y" else SyncFlag.UNSYNCED,
            date_of_punch=safe_str(row.get("DateOfPunch")),
            attendance_status=safe_str(row.get("AttendanceStatus")),
            module_id=safe_str(row.get("ModuleID")),
            trip_type=safe_str(row.get("TripType")),
            passenger_id=safe_str(row.get("PassengerID")),
            allowance_data=allowance if isinstance(allowance, list) else [],
            is_checkout_qr_scan=bool(safe_int(row.get("IsCheckoutQrScan"))),
            traveler_name=safe_str(row.get("TravelerName")),
            phone_number=safe_str(row.get("PhoneNumber")),
            shift_start_time=safe_str(row.get("ShiftStartTime")),
            shift_end_time=safe_str(row.get("ShiftEndTime")),
            minimum_hours_required=safe_float(row.get("MinimumHoursRequired")),
            linked_entry_date=safe_str(row.get("LinkedEntryDate")),
            server_timestamp=safe_int(row.get("ServerTimestamp")),
            approval_required=row.get("ApprovalRequired") == "Y",
        )

    def to_row(self) -> Tuple[Any, ...]:
        return (
            int(self.timestamp),
            self.org_id,
            self.user_id,
            self.punch_type,
            self.punch_direction.value,
            self.lat_lon,
            self.address,
            self.created_on,
            self.is_synced.value,
            self.date_of_punch or date_string_from_ticks(self.timestamp),
            self.attendance_status,
            self.module_id,
            self.trip_type,
            self.passenger_id,
            to_json(list(self.allowance_data or [])),
            1 if self.is_checkout_qr_scan else 0,
            self.traveler_name,
            self.phone_number,
            self.shift_start_time,
            self.shift_end_time,
            self.minimum_hours_required,
            self.linked_entry_date,
            self.server_timestamp,
            "Y" if self.approval_required else "N",
        )

    @classmethod
    def from_server(
        cls, data: Mapping[str, Any], *, user_id: str, day_date: Optional[str] = None
    ) -> Optional["AttendanceRecord"]:
        """Build an already-synced record from a server day payload entry.

        Accepts both PascalCase and camelCase keys. Returns None when the
        entry carries no usable timestamp.
        """
        ticks = api_timestamp_to_ticks(_pick(data, "Timestamp", "timestamp"))
        if ticks is None:
            return None
        direction = str(_pick(data, "PunchDirection", "punchDirection") or "IN").upper()
        allowance = _pick(data, "AllowanceData", "allowanceData")
        if isinstance(allowance, str):
            allowance = safe_parse_json(allowance, default=[])
        created_on = api_timestamp_to_ticks(_pick(data, "CreatedOn", "createdOn"))
        return cls(
            timestamp=ticks,
            user_id=safe_str(_pick(data, "UserID", "userID", "userId")) or user_id,
            punch_direction=PunchDirection.OUT if direction == "OUT" else PunchDirection.IN,
            org_id=safe_str(_pick(data, "OrgID", "orgID", "orgId")),
            punch_type=safe_str(_pick(data, "PunchType", "punchType")),
            lat_lon=safe_str(_pick(data, "LatLon", "latLon")),
            address=safe_str(_pick(data, "Address", "address")),
            created_on=created_on if created_on is not None else ticks,
            is_synced=SyncFlag.SYNCED,
            date_of_punch=safe_str(_pick(data, "DateOfPunch", "dateOfPunch") or day_date),
            attendance_status=safe_str(_pick(data, "AttendanceStatus", "attendanceStatus")),
            module_id=safe_str(_pick(data, "ModuleID", "moduleID", "moduleId")),
            trip_type=safe_str(_pick(data, "TripType", "tripType")),
            passenger_id=safe_str(_pick(data, "PassengerID", "passengerID", "passengerId")),
            allowance_data=allowance if isinstance(allowance, list) else [],
            is_checkout_qr_scan=bool(_pick(data, "IsCheckoutQrScan", "isCheckoutQrScan")),
            traveler_name=safe_str(_pick(data, "TravelerName", "travelerName")),
            phone_number=safe_str(_pick(data, "PhoneNumber", "phoneNumber")),
            shift_start_time=safe_str(_pick(data, "ShiftStartTime", "shiftStartTime")),
            shift_end_time=safe_str(_pick(data, "ShiftEndTime", "shiftEndTime")),
            minimum_hours_required=safe_float(_pick(data, "MinimumHoursRequired", "minimumHoursRequired")),
            linked_entry_date=safe_str(_pick(data, "LinkedEntryDate", "linkedEntryDate")),
            server_timestamp=ticks,
            approval_required=_pick(data, "ApprovalRequired", "approvalRequired") in ("Y", True),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Body for the punch-in / punch-out endpoints."""
        return {
            "timestamp": int(self.timestamp),
            "latLon": self.lat_lon,
            "address": self.address,
            "punchType": self.punch_type,
            "moduleID": self.module_id,
            "tripType": self.trip_type,
            "passengerID": self.passenger_id,
            "allowanceData": list(self.allowance_data or []),
            "isCheckoutQrScan": bool(self.is_checkout_qr_scan),
            "travelerName": self.traveler_name,
            "phoneNumber": self.phone_number,
        }


@dataclass(frozen=True)
class AttendanceDay:
    """Derived summary of one calendar day; rebuilt on every aggregation."""

    date_of_punch: str
    attendance_status: AttendanceStatus
    total_duration: str = "00:00"
    break_duration: str = "00:00"
    worked_hours: float = 0.0
    requires_approval: bool = False
    records: Tuple[AttendanceRecord, ...] = ()


@dataclass(frozen=True)
class PunchRequest:
    """Details captured by the device at punch time."""

    org_id: Optional[str] = None
    punch_type: Optional[str] = None
    lat_lon: Optional[str] = None
    address: Optional[str] = None
    module_id: Optional[str] = None
    trip_type: Optional[str] = None
    passenger_id: Optional[str] = None
    allowance_data: Tuple[Any, ...] = ()
    traveler_name: Optional[str] = None
    phone_number: Optional[str] = None


@dataclass(frozen=True)
class OpenCheckIn:
    record: AttendanceRecord
    is_stale: bool
    missed_checkout: bool
