from __future__ import annotations

from datetime import date, datetime
from uuid import uuid4

from sqlalchemy import Date, DateTime, ForeignKey, String, Text
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_portal.core.datetime_utils import utc_now_naive
from referral_portal.db.base import Base
from referral_portal.models.employee import Employee
from referral_portal.models.job import Job


class Referral(Base):
    """
    A candidate nomination for one job.

    ``current_status`` mirrors the latest row in ``referral_status_history`` and is
    read-only here; ``services.status_history`` is the only module that writes it.
    """

    __tablename__ = "referrals"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), nullable=False, index=True)
    referrer_id: Mapped[str] = mapped_column(ForeignKey("employees.id"), nullable=False, index=True)

    candidate_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    candidate_middle_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    candidate_last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    candidate_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    candidate_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    candidate_dob: Mapped[date] = mapped_column(Date, nullable=False)

    how_know_candidate: Mapped[str] = mapped_column(Text, nullable=False)
    resume_path: Mapped[str | None] = mapped_column(String(512), nullable=True)

    _current_status: Mapped[str] = mapped_column("current_status", String(20), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)

    job: Mapped[Job] = relationship(Job, lazy="selectin")
    referrer: Mapped[Employee] = relationship(Employee, lazy="selectin")

    @hybrid_property
    def current_status(self) -> str:
        return self._current_status

    @property
    def candidate_full_name(self) -> str:
        return f"{self.candidate_first_name} {self.candidate_last_name}".strip()
