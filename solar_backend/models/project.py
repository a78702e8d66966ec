"""
Project models - solar installation projects with milestones, risks, tasks and inventory usage
"""
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from datetime import datetime
from solar_backend.database import Base


# Weak many-to-many link between projects and assigned users
project_users = Table(
    "project_users",
    Base.metadata,
    Column("project_id", String, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, index=True)  # "PRJ-1A2B3C4D"
    name = Column(String, nullable=False)
    location = Column(String, nullable=False, default="")
    county = Column(String, nullable=False, default="", index=True)
    capacity = Column(String, nullable=False, default="")  # "50 kW"
    site_id = Column(String, ForeignKey("sites.id"), nullable=True)
    status = Column(String, nullable=False, default="Planned")
    start_date = Column(Date, nullable=True)
    target_completion_date = Column(Date, nullable=True)
    actual_completion_date = Column(Date, nullable=True)
    progress = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    site = relationship("Site")
    milestones = relationship(
        "Milestone", back_populates="project", order_by="Milestone.position",
        cascade="all, delete-orphan",
    )
    risks = relationship(
        "Risk", back_populates="project", order_by="Risk.position",
        cascade="all, delete-orphan",
    )
    tasks = relationship(
        "ProjectTask", back_populates="project", order_by="ProjectTask.position",
        cascade="all, delete-orphan",
    )
    inventory_usage = relationship(
        "InventoryUsage", back_populates="project", order_by="InventoryUsage.position",
        cascade="all, delete-orphan",
    )
    users = relationship("User", secondary=project_users, order_by="User.name")


class Milestone(Base):
    __tablename__ = "milestones"

    id = Column(String, primary_key=True, index=True)  # "{project_id}-m{n}"
    project_id = Column(String, ForeignKey("projects.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    due_date = Column(Date, nullable=False)
    completed_date = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="Pending")

    project = relationship("Project", back_populates="milestones")


class Risk(Base):
    __tablename__ = "risks"

    id = Column(String, primary_key=True, index=True)  # "{project_id}-risk{n}"
    project_id = Column(String, ForeignKey("projects.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    level = Column(String, nullable=False, default="Medium")
    status = Column(String, nullable=False, default="Open")
    identified_date = Column(Date, nullable=False)
    mitigation_plan = Column(Text, nullable=True)
    resolved_date = Column(Date, nullable=True)
    owner = Column(String, nullable=False, default="")

    project = relationship("Project", back_populates="risks")


class ProjectTask(Base):
    __tablename__ = "project_tasks"

    id = Column(String, primary_key=True, index=True)  # "{project_id}-t{n}"
    project_id = Column(String, ForeignKey("projects.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    assigned_to = Column(String, nullable=False, default="")
    due_date = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="To Do")
    # Lookup only; deleting the milestone leaves the task in place
    milestone_id = Column(String, nullable=True)

    project = relationship("Project", back_populates="tasks")


class InventoryUsage(Base):
    __tablename__ = "inventory_usage"

    id = Column(String, primary_key=True, index=True)  # "{project_id}-inv{n}"
    project_id = Column(String, ForeignKey("projects.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    item_id = Column(String, nullable=False)
    item_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    date_used = Column(Date, nullable=False)
    used_by = Column(String, nullable=False, default="")

    project = relationship("Project", back_populates="inventory_usage")
