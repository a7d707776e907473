"""
Relational store for templates, intakes and the work-unit catalog.

The store owns a SQLAlchemy engine (and its connection pool). It is built
once at application start, initialised with `init()` and disposed with
`close()`. Every write runs in a single transaction; any database failure
rolls the whole write back and surfaces as PersistenceError.
"""

import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import DB_CONNECT_DELAY, DB_CONNECT_RETRIES
from app.db.models import (
    Base,
    CompletedIntakeRow,
    EntryPointRow,
    NodeOptionRow,
    NodeWorkUnitRow,
    Team,
    TemplateNodeRow,
    TemplateRow,
    WorkUnitRow,
)
from app.db.session import build_engine, build_sessionmaker
from app.errors import EstimatorError, NotFoundError, PersistenceError, TreeValidationError
from app.repository.save_builder import TemplateSaveBuilder
from app.tree.types import (
    Answer,
    CompletedIntake,
    Complexity,
    NodeKind,
    Position,
    Template,
    TemplateDetails,
    TreeNode,
    WorkUnit,
)
from app.validation.tree_validator import raise_on_errors

logger = logging.getLogger(__name__)

DEFAULT_TEAMS = [
    ("business-analysis", "Business Analysis"),
    ("insurance-config", "Insurance Configuration"),
    ("integration", "Integration"),
    ("frontend", "Frontend"),
    ("backend", "Backend"),
    ("qa", "Quality Assurance"),
    ("compliance", "Compliance"),
    ("documentation", "Documentation"),
]


class TemplateStore:
    """
    Usage:
        store = TemplateStore.from_url("sqlite://")
        store.init()
        template_id = store.create_template(details, nodes)
        template = store.get_template(template_id)
        store.close()
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessionmaker = build_sessionmaker(engine)
        self.ready = False

    @classmethod
    def from_url(cls, url: str) -> "TemplateStore":
        return cls(build_engine(url))

    # ---------- lifecycle ----------

    def init(self, retries: int = DB_CONNECT_RETRIES, delay: float = DB_CONNECT_DELAY) -> bool:
        """Create the schema, retrying while the database is not reachable yet."""
        for attempt in range(retries):
            try:
                Base.metadata.create_all(bind=self.engine)
                self._seed_teams()
                self.ready = True
                logger.info("Database connected")
                return True
            except (OperationalError, PersistenceError):
                logger.warning("Waiting for database... (%d/%d)", attempt + 1, retries)
                time.sleep(delay)

        logger.error("Database not ready, running without persistence")
        return False

    def close(self) -> None:
        self.engine.dispose()
        self.ready = False

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        session = self._sessionmaker()
        try:
            with session.begin():
                yield session
        except EstimatorError:
            raise
        except SQLAlchemyError as e:
            logger.error("Rolled back %s: %s", operation, e)
            raise PersistenceError(operation, e) from e
        finally:
            session.close()

    def _seed_teams(self) -> None:
        with self._transaction("seed_teams") as session:
            existing = set(session.scalars(select(Team.id)))
            for team_id, name in DEFAULT_TEAMS:
                if team_id not in existing:
                    session.add(Team(id=team_id, name=name))

    # ---------- templates ----------

    def _catalog(self, session: Session, nodes: List[TreeNode]) -> Dict[str, WorkUnitRow]:
        wanted = {a.work_unit_id for n in nodes for a in n.answers if a.work_unit_id}
        if not wanted:
            return {}
        rows = session.scalars(select(WorkUnitRow).where(WorkUnitRow.id.in_(wanted)))
        catalog = {row.id: row for row in rows}
        missing = sorted(wanted - set(catalog))
        if missing:
            raise TreeValidationError([f"unknown work unit '{m}'" for m in missing])
        return catalog

    def create_template(self, details: TemplateDetails, nodes: List[TreeNode]) -> str:
        raise_on_errors(details, nodes)
        with self._transaction("create_template") as session:
            row = TemplateRow(
                name=details.name,
                description=details.description,
                complexity=Complexity(details.complexity).value,
                estimated_duration=details.estimated_duration,
            )
            session.add(row)
            session.flush()

            TemplateSaveBuilder(session, row, self._catalog(session, nodes)).build(nodes)
            template_id = row.id

        logger.info("Created template %s with %d node(s)", template_id, len(nodes))
        return template_id

    def update_template(self, template_id: str, details: TemplateDetails, nodes: List[TreeNode]) -> str:
        """Destructive full replace of the template's details and nodes."""
        raise_on_errors(details, nodes)
        with self._transaction("update_template") as session:
            row = self._active_template(session, template_id)
            row.name = details.name
            row.description = details.description
            row.complexity = Complexity(details.complexity).value
            row.estimated_duration = details.estimated_duration

            TemplateSaveBuilder(session, row, self._catalog(session, nodes)).build(nodes, replace=True)

        logger.info("Replaced template %s with %d node(s)", template_id, len(nodes))
        return template_id

    def delete_template(self, template_id: str) -> None:
        with self._transaction("delete_template") as session:
            row = self._active_template(session, template_id)
            row.is_active = False
            row.is_entry_point = False
            for entry in session.scalars(select(EntryPointRow).where(EntryPointRow.template_id == template_id)):
                entry.is_active = False

    def get_template(self, template_id: str) -> Template:
        return self.get_template_with_meta(template_id)[0]

    def get_template_with_meta(self, template_id: str) -> Tuple[Template, TemplateRow]:
        with self._transaction("get_template") as session:
            row = self._active_template(session, template_id)
            template = self._to_template(session, row)
            session.expunge(row)
            return template, row

    def list_templates(self) -> List[Tuple[Template, TemplateRow]]:
        with self._transaction("list_templates") as session:
            rows = session.scalars(
                select(TemplateRow)
                .where(TemplateRow.is_active.is_(True))
                .order_by(TemplateRow.created_at, TemplateRow.name)
            ).all()
            result = [(self._to_template(session, row), row) for row in rows]
            for row in rows:
                session.expunge(row)
            return result

    def _active_template(self, session: Session, template_id: str) -> TemplateRow:
        row = session.get(TemplateRow, template_id)
        if row is None or not row.is_active:
            raise NotFoundError("template", template_id)
        return row

    def _to_template(self, session: Session, row: TemplateRow) -> Template:
        node_rows = session.scalars(
            select(TemplateNodeRow)
            .where(TemplateNodeRow.template_id == row.id)
            .order_by(TemplateNodeRow.display_order)
        ).all()
        node_ids = [n.id for n in node_rows]

        options: Dict[str, List[NodeOptionRow]] = {node_id: [] for node_id in node_ids}
        for option in session.scalars(
            select(NodeOptionRow)
            .where(NodeOptionRow.node_id.in_(node_ids))
            .order_by(NodeOptionRow.node_id, NodeOptionRow.display_order)
        ):
            options[option.node_id].append(option)

        work_units: Dict[str, WorkUnit] = {}
        for snapshot in session.scalars(select(NodeWorkUnitRow).where(NodeWorkUnitRow.node_id.in_(node_ids))):
            work_units[snapshot.source_work_unit_id] = WorkUnit(
                id=snapshot.source_work_unit_id,
                name=snapshot.name,
                team_id=snapshot.team_id,
                hours=snapshot.hours,
            )

        nodes = []
        for node_row in node_rows:
            position = node_row.position
            nodes.append(TreeNode(
                id=node_row.id,
                kind=NodeKind(node_row.node_type),
                content=node_row.content or "",
                position=Position(x=position["x"], y=position["y"]) if position else None,
                answers=[
                    Answer(text=o.text, target_id=o.next_node_id, work_unit_id=o.work_unit_id)
                    for o in options[node_row.id]
                ],
            ))

        return Template(
            id=row.id,
            details=TemplateDetails(
                name=row.name,
                description=row.description or "",
                complexity=Complexity(row.complexity or Complexity.MEDIUM.value),
                estimated_duration=row.estimated_duration or "",
            ),
            nodes=nodes,
            work_units=work_units,
        )

    # ---------- entry points ----------

    def toggle_entry_point(self, template_id: str) -> bool:
        with self._transaction("toggle_entry_point") as session:
            row = self._active_template(session, template_id)
            row.is_entry_point = not row.is_entry_point

            entry = session.scalars(
                select(EntryPointRow).where(EntryPointRow.template_id == template_id)
            ).first()
            if entry is None and row.is_entry_point:
                session.add(EntryPointRow(
                    template_id=template_id,
                    name=row.name,
                    description=row.description or "",
                ))
            elif entry is not None:
                entry.is_active = row.is_entry_point
            return row.is_entry_point

    def create_entry_point(self, template_id: str, name: str, description: str = "") -> EntryPointRow:
        with self._transaction("create_entry_point") as session:
            template = self._active_template(session, template_id)
            template.is_entry_point = True
            entry = EntryPointRow(template_id=template_id, name=name, description=description)
            session.add(entry)
            session.flush()
            session.expunge(entry)
            return entry

    def list_entry_points(self) -> List[EntryPointRow]:
        with self._transaction("list_entry_points") as session:
            rows = session.scalars(
                select(EntryPointRow)
                .join(TemplateRow, TemplateRow.id == EntryPointRow.template_id)
                .where(EntryPointRow.is_active.is_(True), TemplateRow.is_active.is_(True))
                .order_by(EntryPointRow.name)
            ).all()
            for row in rows:
                session.expunge(row)
            return list(rows)

    # ---------- catalog ----------

    def list_teams(self) -> List[Team]:
        with self._transaction("list_teams") as session:
            rows = session.scalars(select(Team).order_by(Team.id)).all()
            for row in rows:
                session.expunge(row)
            return list(rows)

    def create_team(self, team_id: str, name: str, description: str = "") -> Team:
        with self._transaction("create_team") as session:
            if session.get(Team, team_id) is not None:
                raise TreeValidationError([f"team '{team_id}' already exists"])
            team = Team(id=team_id, name=name, description=description)
            session.add(team)
            session.flush()
            session.expunge(team)
            return team

    def list_work_units(self) -> List[WorkUnit]:
        with self._transaction("list_work_units") as session:
            rows = session.scalars(select(WorkUnitRow).order_by(WorkUnitRow.team_id, WorkUnitRow.name))
            return [WorkUnit(id=r.id, name=r.name, team_id=r.team_id, hours=r.hours) for r in rows]

    def create_work_unit(self, name: str, team_id: str, hours: int, description: str = "") -> WorkUnit:
        if hours < 0:
            raise TreeValidationError([f"work unit hours must be non-negative, got {hours}"])
        with self._transaction("create_work_unit") as session:
            if session.get(Team, team_id) is None:
                raise NotFoundError("team", team_id)
            row = WorkUnitRow(name=name, team_id=team_id, hours=hours, description=description)
            session.add(row)
            session.flush()
            return WorkUnit(id=row.id, name=row.name, team_id=row.team_id, hours=row.hours)

    # ---------- intakes ----------

    def submit_intake(self, template_id: str, answers: Mapping[str, str]) -> str:
        with self._transaction("submit_intake") as session:
            self._active_template(session, template_id)
            node_ids = set(
                session.scalars(
                    select(TemplateNodeRow.id).where(TemplateNodeRow.template_id == template_id)
                )
            )
            unknown = sorted(set(answers) - node_ids)
            if unknown:
                raise TreeValidationError([f"unknown node '{node_id}'" for node_id in unknown])
            row = CompletedIntakeRow(template_id=template_id, answers=dict(answers))
            session.add(row)
            session.flush()
            intake_id = row.id

        logger.info("Recorded intake %s for template %s", intake_id, template_id)
        return intake_id

    def get_intake(self, intake_id: str) -> CompletedIntake:
        with self._transaction("get_intake") as session:
            row = session.get(CompletedIntakeRow, intake_id)
            if row is None:
                raise NotFoundError("intake", intake_id)
            return CompletedIntake(
                id=row.id,
                template_id=row.template_id,
                answers=dict(row.answers or {}),
                created_at=row.created_at,
            )

    def get_intake_template(self, intake: CompletedIntake) -> Optional[Template]:
        """Template the intake was recorded against, even if it has since been deactivated."""
        with self._transaction("get_intake_template") as session:
            row = session.get(TemplateRow, intake.template_id)
            if row is None:
                return None
            return self._to_template(session, row)
