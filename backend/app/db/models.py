from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import uuid

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class Team(Base):
    __tablename__ = "teams"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")


class WorkUnitRow(Base):
    """Catalog work unit; answers reference these by id."""
    __tablename__ = "work_units"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    team_id = Column(String(64), ForeignKey("teams.id"), nullable=False)
    hours = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TemplateRow(Base):
    __tablename__ = "templates"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    complexity = Column(String(16), default="Medium")
    estimated_duration = Column(String(64), default="")
    is_active = Column(Boolean, default=True, nullable=False)
    is_entry_point = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    nodes = relationship(
        "TemplateNodeRow",
        back_populates="template",
        order_by="TemplateNodeRow.display_order",
        cascade="all, delete-orphan",
    )


class TemplateNodeRow(Base):
    __tablename__ = "template_nodes"

    id = Column(String(36), primary_key=True, default=_uuid)
    template_id = Column(String(36), ForeignKey("templates.id", ondelete="CASCADE"), nullable=False)
    node_type = Column(String(16), nullable=False, default="decision")
    content = Column(Text, default="")
    position = Column(JSON)  # {"x": .., "y": ..} or null
    display_order = Column(Integer, nullable=False, default=0)

    template = relationship("TemplateRow", back_populates="nodes")
    options = relationship(
        "NodeOptionRow",
        back_populates="node",
        foreign_keys="NodeOptionRow.node_id",
        order_by="NodeOptionRow.display_order",
        cascade="all, delete-orphan",
    )
    work_units = relationship(
        "NodeWorkUnitRow",
        back_populates="node",
        cascade="all, delete-orphan",
    )


class NodeOptionRow(Base):
    """An answer of a decision node; next_node_id is the outgoing edge."""
    __tablename__ = "node_options"

    id = Column(String(36), primary_key=True, default=_uuid)
    node_id = Column(String(36), ForeignKey("template_nodes.id", ondelete="CASCADE"), nullable=False)
    text = Column(String(255), nullable=False)
    next_node_id = Column(String(36), ForeignKey("template_nodes.id", ondelete="SET NULL"))
    display_order = Column(Integer, nullable=False, default=0)
    work_unit_id = Column(String(36))

    node = relationship("TemplateNodeRow", back_populates="options", foreign_keys=[node_id])


class NodeWorkUnitRow(Base):
    """Snapshot of a catalog work unit as attached to one answer at save time."""
    __tablename__ = "node_work_units"

    id = Column(String(36), primary_key=True, default=_uuid)
    node_id = Column(String(36), ForeignKey("template_nodes.id", ondelete="CASCADE"), nullable=False)
    option_id = Column(String(36), ForeignKey("node_options.id", ondelete="CASCADE"), nullable=False)
    source_work_unit_id = Column(String(36), nullable=False)
    team_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    hours = Column(Integer, nullable=False, default=0)

    node = relationship("TemplateNodeRow", back_populates="work_units")


class EntryPointRow(Base):
    __tablename__ = "entry_points"

    id = Column(String(36), primary_key=True, default=_uuid)
    template_id = Column(String(36), ForeignKey("templates.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CompletedIntakeRow(Base):
    __tablename__ = "completed_intakes"

    id = Column(String(36), primary_key=True, default=_uuid)
    template_id = Column(String(36), ForeignKey("templates.id"), nullable=False)
    answers = Column(JSON, nullable=False)  # node id -> answer text
    created_at = Column(DateTime(timezone=True), server_default=func.now())
