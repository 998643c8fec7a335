from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, Text, Time, UniqueConstraint, func
from sqlalchemy.orm import relationship

from . import Base

shift_type_enum = Enum("morning", "afternoon", "evening", name="shift_type")
shift_status_enum = Enum("scheduled", "confirmed", "completed", "absent", name="shift_status")


class ShiftAssignment(Base):
    __tablename__ = "shift_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "shift_date", "shift_type", name="uq_shift_assignment_slot"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    shift_date = Column(Date, nullable=False, index=True)
    shift_type = Column(shift_type_enum, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(shift_status_enum, nullable=False, default="scheduled")
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    creator = relationship("User", foreign_keys=[created_by])

    @property
    def user_name(self) -> str | None:
        return self.user.full_name if self.user else None

    @property
    def creator_name(self) -> str | None:
        return self.creator.full_name if self.creator else None
