import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select

from app.core.errors import ConflictError, NotFoundError
from app.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=SQLModel)

BATCH_GET_SIZE = 100


@dataclass
class RepositoryErrorMessages:
    not_found: str = "Entity not found"


@dataclass
class RepositoryOptions:
    primary_key: str = "id"
    sort_key: Optional[str] = None
    verbose: bool = False
    error_messages: RepositoryErrorMessages = field(default_factory=RepositoryErrorMessages)


class BaseRepository(Generic[T]):
    """Key-addressed persistence over one SQLModel table.

    Every call opens its own session on a worker thread, so one repository can be
    shared by concurrent invocations. Operations touch a single item (or a read
    set) and are never combined into a multi-item transaction.
    """

    model: Type[T]

    def __init__(self, engine: Engine, options: Optional[RepositoryOptions] = None,
                 model: Optional[Type[T]] = None):
        self.engine = engine
        self.options = options or RepositoryOptions()
        if model is not None:
            self.model = model

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    def _key_filter(self, stmt, id: str, sort_key_value: Optional[str] = None):
        stmt = stmt.where(getattr(self.model, self.options.primary_key) == id)
        if self.options.sort_key and sort_key_value is not None:
            stmt = stmt.where(getattr(self.model, self.options.sort_key) == sort_key_value)
        return stmt

    def _log(self, msg: str, **extra):
        if self.options.verbose:
            logger.info(msg, extra={"table": self.table_name, **extra})

    async def _run(self, fn: Callable[[Session], Any]) -> Any:
        def work():
            with Session(self.engine, expire_on_commit=False) as session:
                return fn(session)
        return await asyncio.to_thread(work)

    async def save(self, entity: T) -> T:
        self._log("repository_save")

        def op(session: Session):
            merged = session.merge(entity)
            session.commit()
            return merged
        return await self._run(op)

    async def create(self, entity: T) -> T:
        """Insert only; an existing row with the same key raises ConflictError."""
        self._log("repository_create")

        def op(session: Session):
            session.add(entity)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ConflictError(f"{self.table_name} already exists") from e
            return entity
        return await self._run(op)

    async def find(self, id: str, sort_key_value: Optional[str] = None) -> Optional[T]:
        self._log("repository_get", key=id)
        return await self._run(
            lambda s: s.exec(self._key_filter(select(self.model), id, sort_key_value)).first())

    async def get_by_id(self, id: str, sort_key_value: Optional[str] = None) -> T:
        entity = await self.find(id, sort_key_value)
        if entity is None:
            raise NotFoundError(self.options.error_messages.not_found)
        return entity

    async def query(self, key_name: str, key_value: Any, limit: Optional[int] = None,
                    order_by: Optional[str] = None, descending: bool = False) -> List[T]:
        self._log("repository_query", key_name=key_name)
        stmt = select(self.model).where(getattr(self.model, key_name) == key_value)
        if order_by:
            column = getattr(self.model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column)
        if limit:
            stmt = stmt.limit(limit)
        return await self._run(lambda s: list(s.exec(stmt).all()))

    async def update(self, id: str, attributes: Dict[str, Any], sort_key_value: Optional[str] = None):
        self._log("repository_update", key=id)
        keys = {self.options.primary_key, self.options.sort_key}
        changes = {k: v for k, v in attributes.items() if k not in keys}
        if not changes:
            return

        def op(session: Session):
            entity = session.exec(self._key_filter(select(self.model), id, sort_key_value)).first()
            if entity is None:
                raise NotFoundError(self.options.error_messages.not_found)
            for name, value in changes.items():
                setattr(entity, name, value)
            session.add(entity)
            session.commit()
        await self._run(op)

    async def delete(self, id: str, sort_key_value: Optional[str] = None):
        self._log("repository_delete", key=id)

        def op(session: Session):
            entity = session.exec(self._key_filter(select(self.model), id, sort_key_value)).first()
            if entity is not None:
                session.delete(entity)
                session.commit()
        await self._run(op)

    async def scan(self, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[T]:
        self._log("repository_scan")
        stmt = select(self.model)
        for name, value in (filters or {}).items():
            stmt = stmt.where(getattr(self.model, name) == value)
        if limit:
            stmt = stmt.limit(limit)
        return await self._run(lambda s: list(s.exec(stmt).all()))

    async def batch_get(self, ids: List[str]) -> List[T]:
        self._log("repository_batch_get", count=len(ids))
        if not ids:
            return []
        column = getattr(self.model, self.options.primary_key)

        def op(session: Session):
            out: List[T] = []
            for i in range(0, len(ids), BATCH_GET_SIZE):
                chunk = ids[i:i + BATCH_GET_SIZE]
                out.extend(session.exec(select(self.model).where(column.in_(chunk))).all())
            return out
        return await self._run(op)
