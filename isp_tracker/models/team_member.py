"""
Team member model - internal staff assigned to projects
"""
from sqlalchemy import Column, Integer, String, Enum as SQLEnum
from isp_tracker.database import Base
from enum import Enum


class TeamMemberRole(str, Enum):
    PROJECT_MANAGER = "Project Manager"
    NETWORK_ENGINEER = "Network Engineer"
    FIELD_TECHNICIAN = "Field Technician"
    SALES_REPRESENTATIVE = "Sales Representative"
    NOC_ENGINEER = "NOC Engineer"


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    role = Column(SQLEnum(TeamMemberRole, native_enum=False), nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
