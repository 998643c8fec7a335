from datetime import date, datetime, time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ShiftType = Literal["morning", "afternoon", "evening"]
ShiftStatus = Literal["scheduled", "confirmed", "completed", "absent"]


class ShiftCreate(BaseModel):
    user_id: int = Field(..., gt=0)
    shift_date: date
    shift_type: ShiftType
    start_time: time
    end_time: time
    status: ShiftStatus = "scheduled"
    notes: str | None = Field(None, max_length=2000)


class ShiftUpdate(BaseModel):
    user_id: int | None = Field(None, gt=0)
    shift_date: date | None = None
    shift_type: ShiftType | None = None
    start_time: time | None = None
    end_time: time | None = None
    status: ShiftStatus | None = None
    notes: str | None = Field(None, max_length=2000)

    @field_validator("user_id", "shift_date", "shift_type", "start_time", "end_time", "status", mode="before")
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class ShiftRead(BaseModel):
    id: int
    user_id: int
    user_name: str | None = None
    shift_date: date
    shift_type: str
    start_time: time
    end_time: time
    status: str
    notes: str | None = None
    created_by: int | None = None
    creator_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ScheduleStats(BaseModel):
    start_date: date
    end_date: date
    total_schedules: int = 0
    scheduled_users: int = 0
    completed_schedules: int = 0
    absent_schedules: int = 0
