"""
Performance models - per-member scorecards and monthly team rollups
"""
from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime
from isp_tracker.database import Base


class PerformanceMetric(Base):
    """Rolling scorecard, one row per team member"""
    __tablename__ = "performance_metrics"

    id = Column(Integer, primary_key=True, index=True)
    team_member_id = Column(Integer, ForeignKey("team_members.id"), unique=True, nullable=False)
    projects_completed = Column(Integer, nullable=False, default=0)
    average_completion_time = Column(Float, nullable=True)  # days
    customer_satisfaction_score = Column(Float, nullable=True)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class MonthlyTeamPerformance(Base):
    __tablename__ = "monthly_team_performance"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_monthly_performance_period"),)

    id = Column(Integer, primary_key=True, index=True)
    month = Column(Integer, nullable=False)  # 1-12
    year = Column(Integer, nullable=False)
    projects_completed = Column(Integer, nullable=False, default=0)
    average_completion_time = Column(Float, nullable=True)
    average_customer_satisfaction = Column(Float, nullable=True)
