"""SQLAlchemy ORM models for churches, visits, ratings and the activity log."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Church(Base):
    __tablename__ = "churches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Visit(Base):
    __tablename__ = "visits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    church_id: Mapped[int] = mapped_column(ForeignKey("churches.id"), index=True)
    visited_by: Mapped[str | None] = mapped_column(String, index=True, nullable=True)
    visit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    attendees_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_rated: Mapped[bool] = mapped_column(Boolean, default=False)


class VisitRatingDB(Base):
    __tablename__ = "visit_ratings"
    __table_args__ = (
        CheckConstraint(
            "mission_openness_rating >= 1 AND mission_openness_rating <= 5",
            name="visit_ratings_mission_openness_rating_check",
        ),
        CheckConstraint(
            "hospitality_rating >= 1 AND hospitality_rating <= 5",
            name="visit_ratings_hospitality_rating_check",
        ),
        CheckConstraint(
            "calculated_star_rating >= 1 AND calculated_star_rating <= 5",
            name="visit_ratings_calculated_star_rating_check",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    visit_id: Mapped[int] = mapped_column(
        ForeignKey("visits.id", ondelete="CASCADE"), unique=True, index=True
    )
    missionary_id: Mapped[str | None] = mapped_column(String, index=True, nullable=True)

    mission_openness_rating: Mapped[int] = mapped_column(Integer)
    hospitality_rating: Mapped[int] = mapped_column(Integer)
    missionary_support_count: Mapped[int] = mapped_column(Integer, default=0)

    offerings_amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), default=0)
    church_members: Mapped[int] = mapped_column(Integer)
    attendees_count: Mapped[int] = mapped_column(Integer)

    financial_score: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False))
    calculated_star_rating: Mapped[int] = mapped_column(Integer)

    visit_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class ChurchStarRatingDB(Base):
    __tablename__ = "church_star_ratings"
    __table_args__ = (
        CheckConstraint(
            "average_stars >= 0 AND average_stars <= 5",
            name="church_star_ratings_average_stars_check",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    church_id: Mapped[int] = mapped_column(
        ForeignKey("churches.id", ondelete="CASCADE"), unique=True, index=True
    )

    average_stars: Mapped[float] = mapped_column(
        Numeric(2, 1, asdecimal=False), default=0, index=True
    )
    missionary_support_count: Mapped[int] = mapped_column(Integer, default=0)

    total_visits: Mapped[int] = mapped_column(Integer, default=0)
    visits_last_30_days: Mapped[int] = mapped_column(Integer, default=0)
    visits_last_90_days: Mapped[int] = mapped_column(Integer, default=0)

    avg_mission_openness: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False), default=0)
    avg_hospitality: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False), default=0)
    avg_financial_generosity: Mapped[float] = mapped_column(
        Numeric(3, 2, asdecimal=False), default=0
    )

    total_offerings_collected: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), default=0
    )
    avg_offerings_per_visit: Mapped[float] = mapped_column(
        Numeric(10, 2, asdecimal=False), default=0
    )

    last_visit_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    last_calculated: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class ActivityDB(Base):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    church_id: Mapped[int] = mapped_column(ForeignKey("churches.id"), index=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    type: Mapped[str] = mapped_column(String, default="note")
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    activity_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
