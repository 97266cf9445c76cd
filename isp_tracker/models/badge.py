"""
Team member badges - recognition awards, never edited once given
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Enum as SQLEnum
from datetime import datetime
from enum import Enum
from isp_tracker.database import Base


class BadgeType(str, Enum):
    SPEED_DEMON = "speed_demon"
    TECH_WIZARD = "tech_wizard"
    CUSTOMER_WHISPERER = "customer_whisperer"
    TEAM_PLAYER = "team_player"
    FIRST_MILE = "first_mile"
    FIFTH_MILE = "fifth_mile"
    TENTH_MILE = "tenth_mile"
    PERFECT_SCORE = "perfect_score"
    ON_TIME = "on_time"
    EFFICIENCY_EXPERT = "efficiency_expert"


BADGE_INFO = {
    BadgeType.SPEED_DEMON: ("Speed Demon", "Completed projects ahead of schedule"),
    BadgeType.TECH_WIZARD: ("Tech Wizard", "Resolved complex technical issues"),
    BadgeType.CUSTOMER_WHISPERER: ("Customer Whisperer", "Excellent customer satisfaction"),
    BadgeType.TEAM_PLAYER: ("Team Player", "Helped team members succeed"),
    BadgeType.FIRST_MILE: ("First Mile", "First project completion milestone"),
    BadgeType.FIFTH_MILE: ("Fifth Mile", "Five projects completed milestone"),
    BadgeType.TENTH_MILE: ("Tenth Mile", "Ten projects completed milestone"),
    BadgeType.PERFECT_SCORE: ("Perfect Score", "Completed a project with no issues"),
    BadgeType.ON_TIME: ("On Time", "Consistently completed projects on time"),
    BadgeType.EFFICIENCY_EXPERT: ("Efficiency Expert", "Completed projects with minimal resources"),
}


def get_badge_info(badge_type) -> dict:
    label, description = BADGE_INFO.get(
        badge_type, ("Unknown Badge", "Badge details not found")
    )
    return {"label": label, "description": description}


class TeamMemberBadge(Base):
    __tablename__ = "team_member_badges"

    id = Column(Integer, primary_key=True, index=True)
    team_member_id = Column(Integer, ForeignKey("team_members.id"), nullable=False, index=True)
    badge_type = Column(SQLEnum(BadgeType, native_enum=False), nullable=False)
    awarded_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)
    description = Column(Text, nullable=True)
