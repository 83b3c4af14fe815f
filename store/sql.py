"""SQLAlchemy-backed store.

Issues and action items map to two ORM classes with identical columns; the
ItemKind enum selects the class, table names are never built from strings.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Type

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    cast,
    create_engine,
    literal,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, aliased, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from contracts import (
    BreakdownItem,
    Confidence,
    DependencyEdge,
    EstimateHistoryRecord,
    EstimateSource,
    ItemKind,
    UsageRecord,
    WorkItem,
)
from contracts.work_item_contracts import utcnow
from errors import InvalidInput, NotFound, PersistenceFailed
from store.base import MUTABLE_FIELDS, Descendant, EffortStore, EstimateWrite

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class WorkItemColumns:
    """Columns shared by issues and action items."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="To Do")
    assignee: Mapped[Optional[str]] = mapped_column(String(255))
    is_epic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Effort
    estimated_hours: Mapped[Optional[float]] = mapped_column("estimated_effort_hours", Float)
    rolled_up_hours: Mapped[Optional[float]] = mapped_column("effort_hours", Float)

    # Mirror of the latest estimate history version
    ai_estimate_hours: Mapped[Optional[float]] = mapped_column("ai_effort_estimate_hours", Float)
    ai_estimate_confidence: Mapped[Optional[str]] = mapped_column(String(20))
    ai_estimate_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ai_estimate_updated_at: Mapped[Optional[datetime]] = mapped_column(
        "ai_estimate_last_updated", DateTime(timezone=True)
    )


class IssueRecord(WorkItemColumns, Base):
    __tablename__ = "issues"

    parent_id: Mapped[Optional[int]] = mapped_column(
        "parent_issue_id", ForeignKey("issues.id", ondelete="CASCADE"), index=True
    )


class ActionItemRecord(WorkItemColumns, Base):
    __tablename__ = "action_items"

    parent_id: Mapped[Optional[int]] = mapped_column(
        "parent_item_id", ForeignKey("action_items.id", ondelete="CASCADE"), index=True
    )


class EstimateHistoryRow(Base):
    """Append-only estimate history."""

    __tablename__ = "effort_estimate_history"
    __table_args__ = (
        UniqueConstraint("item_type", "item_id", "version", name="uq_effort_history_version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    estimate_hours: Mapped[float] = mapped_column(Float, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence: Mapped[str] = mapped_column(String(20), nullable=False)
    breakdown: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    reasoning: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class DependencyRow(Base):
    __tablename__ = "issue_dependencies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    source_item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    dependent_item_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    dependency_type: Mapped[str] = mapped_column(String(50), nullable=False, default="blocks")
    project_id: Mapped[Optional[int]] = mapped_column(Integer)


class UsageRow(Base):
    __tablename__ = "ai_usage_tracking"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer)
    project_id: Mapped[Optional[int]] = mapped_column(Integer, index=True)
    feature: Mapped[str] = mapped_column(String(50), nullable=False)
    operation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    prompt_tokens: Mapped[int] = mapped_column(Integer, default=0)
    completion_tokens: Mapped[int] = mapped_column(Integer, default=0)
    total_tokens: Mapped[int] = mapped_column(Integer, default=0)
    cost_usd: Mapped[float] = mapped_column(Float, default=0.0)
    model: Mapped[str] = mapped_column(String(100))
    usage_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


_MODELS: Dict[ItemKind, Type[WorkItemColumns]] = {
    ItemKind.ISSUE: IssueRecord,
    ItemKind.ACTION_ITEM: ActionItemRecord,
}


def _to_item(row) -> WorkItem:
    data = {name: getattr(row, name) for name in WorkItem.model_fields}
    data["ai_estimate_confidence"] = (
        Confidence(row.ai_estimate_confidence) if row.ai_estimate_confidence else None
    )
    return WorkItem(**data)


def _to_history(row: EstimateHistoryRow) -> EstimateHistoryRecord:
    payload = row.breakdown or {}
    return EstimateHistoryRecord(
        item_type=ItemKind(row.item_type),
        item_id=row.item_id,
        version=row.version,
        estimate_hours=row.estimate_hours,
        confidence=Confidence(row.confidence),
        breakdown=[BreakdownItem.model_validate(t) for t in payload.get("tasks", [])],
        assumptions=payload.get("assumptions", []),
        risks=payload.get("risks", []),
        reasoning=row.reasoning or "",
        source=EstimateSource(row.source),
        created_by=row.created_by,
        created_at=row.created_at,
    )


def _path_key(path: str) -> List[int]:
    return [int(part) for part in path.split(".")]


class SqlEffortStore(EffortStore):
    """Store backed by any SQLAlchemy-supported database."""

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None, create_schema: bool = True):
        """Initialize the store.

        Args:
            url: SQLAlchemy URL (e.g. sqlite:///effort.db, postgresql+psycopg://...)
            engine: Pre-built engine; takes precedence over url
            create_schema: Create missing tables on start-up
        """
        if engine is None:
            if url is None:
                raise ValueError("SqlEffortStore needs a url or an engine")
            kwargs: Dict[str, Any] = {}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection so every session sees the same database
                kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
            engine = create_engine(url, **kwargs)
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        if create_schema:
            Base.metadata.create_all(engine)

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        """One transaction; storage errors roll back and surface as PersistenceFailed."""
        try:
            with self._session_factory.begin() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("[Store] Transaction rolled back: %s", e)
            raise PersistenceFailed(f"Store operation rolled back: {e}") from e

    def _load(self, session: Session, kind: ItemKind, item_id: int, for_update: bool = False):
        model = _MODELS[kind]
        stmt = select(model).where(model.id == item_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise NotFound(kind, item_id)
        return row

    # -- work items ---------------------------------------------------------

    def add_item(
        self,
        kind: ItemKind,
        project_id: int,
        title: str,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
        status: str = "To Do",
        assignee: Optional[str] = None,
        estimated_hours: Optional[float] = None,
        is_epic: bool = False,
    ) -> WorkItem:
        kind = ItemKind(kind)
        self._check_parent(kind, project_id, parent_id)
        with self._transaction() as session:
            row = _MODELS[kind](
                project_id=project_id,
                title=title,
                description=description,
                parent_id=parent_id,
                status=status,
                assignee=assignee,
                estimated_hours=estimated_hours,
                is_epic=is_epic,
                ai_estimate_version=0,
            )
            session.add(row)
            session.flush()
            return _to_item(row)

    def get_item(self, kind: ItemKind, item_id: int) -> WorkItem:
        kind = ItemKind(kind)
        with self._transaction() as session:
            return _to_item(self._load(session, kind, item_id))

    def update_item(self, kind: ItemKind, item_id: int, **changes: Any) -> WorkItem:
        kind = ItemKind(kind)
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise InvalidInput(f"Cannot update fields: {sorted(unknown)}")
        with self._transaction() as session:
            row = self._load(session, kind, item_id, for_update=True)
            if changes.get("parent_id") is not None:
                parent = self._load(session, kind, changes["parent_id"])
                if parent.project_id != row.project_id:
                    raise InvalidInput(f"Parent {changes['parent_id']} is in another project")
                self._check_not_descendant(
                    kind, item_id, changes["parent_id"],
                    parent_of=lambda node_id: self._load(session, kind, node_id).parent_id,
                )
            for name, value in changes.items():
                if isinstance(value, Confidence):
                    value = value.value
                setattr(row, name, value)
            session.flush()
            return _to_item(row)

    def get_children(self, kind: ItemKind, parent_id: int) -> List[WorkItem]:
        model = _MODELS[ItemKind(kind)]
        with self._transaction() as session:
            rows = session.execute(
                select(model).where(model.parent_id == parent_id).order_by(model.id)
            ).scalars()
            return [_to_item(row) for row in rows]

    def get_descendants(self, kind: ItemKind, parent_id: int, max_depth: int = 10) -> List[Descendant]:
        """Recursive CTE over parent ids, bounded by max_depth."""
        model = _MODELS[ItemKind(kind)]
        child = aliased(model)
        grandchild = aliased(model)

        tree = (
            select(
                model.id.label("id"),
                literal(1).label("depth"),
                cast(model.id, String).label("path"),
            )
            .where(model.parent_id == parent_id)
            .cte("descendants", recursive=True)
        )
        tree = tree.union_all(
            select(
                child.id,
                tree.c.depth + 1,
                tree.c.path + literal(".") + cast(child.id, String),
            ).where(child.parent_id == tree.c.id, tree.c.depth < max_depth)
        )
        has_children = select(grandchild.id).where(grandchild.parent_id == model.id).exists()
        stmt = select(model, tree.c.depth, tree.c.path, has_children.label("has_children")).join(
            tree, model.id == tree.c.id
        )

        with self._transaction() as session:
            rows = session.execute(stmt).all()
            found = [
                Descendant(
                    item=_to_item(row),
                    depth=depth,
                    path=_path_key(path),
                    is_leaf=not has_kids,
                )
                for row, depth, path, has_kids in rows
            ]
        found.sort(key=lambda d: d.path)
        return found

    def list_parent_ids(self, kind: ItemKind, project_id: int) -> List[int]:
        model = _MODELS[ItemKind(kind)]
        with self._transaction() as session:
            rows = session.execute(
                select(model.parent_id)
                .where(model.project_id == project_id, model.parent_id.is_not(None))
                .distinct()
                .order_by(model.parent_id)
            ).scalars()
            return list(rows)

    def set_rolled_up_hours(self, kind: ItemKind, item_id: int, hours: float) -> None:
        kind = ItemKind(kind)
        model = _MODELS[kind]
        with self._transaction() as session:
            result = session.execute(
                update(model).where(model.id == item_id).values(rolled_up_hours=hours)
            )
            if result.rowcount != 1:
                raise NotFound(kind, item_id)

    # -- estimate history ---------------------------------------------------

    def record_estimate(self, kind: ItemKind, item_id: int, write: EstimateWrite) -> EstimateHistoryRecord:
        kind = ItemKind(kind)
        model = _MODELS[kind]
        with self._transaction() as session:
            row = self._load(session, kind, item_id, for_update=True)
            seen = row.ai_estimate_version or 0
            version = seen + 1
            now = utcnow()

            # Compare-and-increment: a writer that read the same version loses.
            result = session.execute(
                update(model)
                .where(model.id == item_id, model.ai_estimate_version == seen)
                .values(
                    ai_estimate_hours=write.estimate_hours,
                    ai_estimate_confidence=Confidence(write.confidence).value,
                    ai_estimate_version=version,
                    ai_estimate_updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise PersistenceFailed(
                    f"Concurrent estimate write on {kind.value} {item_id} (version {seen} changed)"
                )

            history = EstimateHistoryRow(
                item_type=kind.value,
                item_id=item_id,
                estimate_hours=write.estimate_hours,
                version=version,
                confidence=Confidence(write.confidence).value,
                breakdown={
                    "tasks": [b.model_dump(mode="json") for b in write.breakdown],
                    "assumptions": list(write.assumptions),
                    "risks": list(write.risks),
                },
                reasoning=write.reasoning,
                source=EstimateSource(write.source).value,
                created_by=write.created_by,
                created_at=now,
            )
            session.add(history)
            session.flush()
            return _to_history(history)

    def get_history(self, kind: ItemKind, item_id: int) -> List[EstimateHistoryRecord]:
        kind = ItemKind(kind)
        with self._transaction() as session:
            rows = session.execute(
                select(EstimateHistoryRow)
                .where(EstimateHistoryRow.item_type == kind.value, EstimateHistoryRow.item_id == item_id)
                .order_by(EstimateHistoryRow.version.desc())
            ).scalars()
            return [_to_history(row) for row in rows]

    # -- dependencies -------------------------------------------------------

    def add_dependency(
        self,
        kind: ItemKind,
        prerequisite_id: int,
        dependent_id: int,
        dependency_type: str = "blocks",
        project_id: Optional[int] = None,
    ) -> DependencyEdge:
        kind = ItemKind(kind)
        with self._transaction() as session:
            dependent = self._load(session, kind, dependent_id)
            row = DependencyRow(
                item_type=kind.value,
                source_item_id=prerequisite_id,
                dependent_item_id=dependent_id,
                dependency_type=dependency_type,
                project_id=project_id if project_id is not None else dependent.project_id,
            )
            session.add(row)
            session.flush()
            edge_id = row.id
        return next(e for e in self.get_prerequisites(kind, dependent_id) if e.id == edge_id)

    def get_prerequisites(self, kind: ItemKind, dependent_id: int) -> List[DependencyEdge]:
        kind = ItemKind(kind)
        model = _MODELS[kind]
        stmt = (
            select(DependencyRow, model)
            .outerjoin(model, DependencyRow.source_item_id == model.id)
            .where(DependencyRow.dependent_item_id == dependent_id, DependencyRow.item_type == kind.value)
            .order_by(DependencyRow.id)
        )
        with self._transaction() as session:
            return [
                DependencyEdge(
                    id=edge.id,
                    prerequisite_id=edge.source_item_id,
                    dependent_id=edge.dependent_item_id,
                    item_type=kind,
                    dependency_type=edge.dependency_type,
                    prerequisite_title=prerequisite.title if prerequisite else None,
                    prerequisite_status=prerequisite.status if prerequisite else None,
                    prerequisite_effort=prerequisite.estimated_hours if prerequisite else None,
                )
                for edge, prerequisite in session.execute(stmt).all()
            ]

    # -- usage telemetry ----------------------------------------------------

    def record_usage(self, record: UsageRecord) -> None:
        with self._transaction() as session:
            session.add(UsageRow(
                user_id=record.user_id,
                project_id=record.project_id,
                feature=record.feature,
                operation_type=record.operation_type,
                prompt_tokens=record.prompt_tokens,
                completion_tokens=record.completion_tokens,
                total_tokens=record.total_tokens,
                cost_usd=record.cost_usd,
                model=record.model,
                usage_metadata=record.metadata,
                created_at=record.created_at,
            ))

    def list_usage(self, project_id: int) -> List[UsageRecord]:
        with self._transaction() as session:
            rows = session.execute(
                select(UsageRow).where(UsageRow.project_id == project_id).order_by(UsageRow.id)
            ).scalars()
            return [
                UsageRecord(
                    user_id=row.user_id,
                    project_id=row.project_id,
                    feature=row.feature,
                    operation_type=row.operation_type,
                    prompt_tokens=row.prompt_tokens or 0,
                    completion_tokens=row.completion_tokens or 0,
                    total_tokens=row.total_tokens or 0,
                    cost_usd=row.cost_usd or 0.0,
                    model=row.model or "unknown",
                    metadata=row.usage_metadata or {},
                    created_at=row.created_at,
                )
                for row in rows
            ]
