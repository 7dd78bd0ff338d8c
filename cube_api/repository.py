"""
Generic repository (DAO) over SQLAlchemy

One object serves every entity type. All store failures come out as
`PersistenceError` (or its `ConflictError` subclass for constraint
violations); SQLAlchemy exceptions never leave this module.

Reads always hit the database: queries run with `populate_existing` so the
session identity map never serves a stale row.
"""

import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Type, TypeVar

from opentelemetry import trace
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import ConflictError, PersistenceError
from .models import Entity

T = TypeVar('T', bound=Entity)

SORT_DIRECTIONS = ('ASC', 'DESC')


class Repository:
    """
    Uniform CRUD access to persistent entities

    Usage:
        repo = Repository(db.session)

        user = User(name='Jane', email='jane@x.com', password=digest)
        repo.add(user)                                  # user.id is set
        repo.get_one(User, user.id)
        repo.get_all_by(User, {'company_id': 3})
        repo.get_by_order(User, {}, {'name': 'ASC'})

        user.job = 'CTO'
        repo.update(user)
        repo.delete(user)
    """

    def __init__(self, session, logger=None):
        """
        Args:
            session: SQLAlchemy Session or scoped_session
        """
        self.session = session
        self.logger = logger or logging.getLogger(__name__)
        self.tracer = trace.get_tracer(__name__)

    @contextmanager
    def _operation(self, operation: str, model: type):
        """Trace one store operation and translate its failures"""
        with self.tracer.start_as_current_span(f"db.{operation}.{model.__name__}") as span:
            span.set_attribute("db.system", self._dialect())
            span.set_attribute("db.operation", operation)
            span.set_attribute("db.target", model.__name__)
            try:
                yield span
            except IntegrityError as e:
                self._rollback()
                self.logger.warning(f"Constraint violation on {operation} {model.__name__}: {e.orig}")
                raise ConflictError(f"{model.__name__}: {e.orig}") from e
            except (SQLAlchemyError, OverflowError) as e:
                # OverflowError: the driver could not bind an integer
                self._rollback()
                self.logger.error(f"Store error on {operation} {model.__name__}: {e}")
                raise PersistenceError(f"{model.__name__}: {e}") from e

    def _dialect(self) -> str:
        try:
            return self.session.get_bind().dialect.name
        except SQLAlchemyError:
            return 'unknown'

    def _rollback(self):
        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            self.logger.error(f"Rollback failed: {e}", exc_info=True)

    # ============================================
    # WRITES
    # ============================================

    def add(self, entity: T) -> T:
        with self._operation('insert', type(entity)):
            self.session.add(entity)
            self.session.commit()
            self.logger.debug(f"Inserted {type(entity).__name__} {entity.id}")
        return entity

    def update(self, entity: T) -> T:
        model = type(entity)
        if not inspect(entity).persistent:
            raise PersistenceError(f"{model.__name__} is not tracked by the session, cannot update")

        with self._operation('update', model):
            self.session.commit()
        return entity

    def delete(self, entity: T) -> None:
        model = type(entity)
        if not inspect(entity).persistent:
            raise PersistenceError(f"{model.__name__} is not tracked by the session, cannot delete")

        with self._operation('delete', model):
            self.session.delete(entity)
            self.session.commit()

    # ============================================
    # READS
    # ============================================

    def get_one(self, model: Type[T], id) -> Optional[T]:
        with self._operation('select', model) as span:
            span.set_attribute("db.entity.id", str(id))
            return self.session.get(model, id, populate_existing=True)

    def get_one_by(self, model: Type[T], criteria: Dict) -> Optional[T]:
        with self._operation('select', model):
            statement = (
                select(model)
                .filter_by(**criteria)
                .limit(1)
                .execution_options(populate_existing=True)
            )
            return self.session.scalars(statement).first()

    def get_all_by(self, model: Type[T], criteria: Optional[Dict] = None) -> List[T]:
        """
        Exact-match conjunction of `criteria`; empty criteria returns every row
        """
        with self._operation('select', model):
            statement = (
                select(model)
                .filter_by(**(criteria or {}))
                .execution_options(populate_existing=True)
            )
            return list(self.session.scalars(statement).all())

    def get_all(self, model: Type[T]) -> List[T]:
        return self.get_all_by(model, {})

    def get_by_order(self, model: Type[T], criteria: Optional[Dict],
                     order: Dict[str, str]) -> List[T]:
        """
        Like get_all_by, sorted

        Args:
            order: {field: 'ASC' | 'DESC'}, applied in insertion order
        """
        columns = model.__table__.columns
        clauses = []
        for field_name, direction in order.items():
            direction = (direction or 'ASC').upper()
            if field_name not in columns:
                raise PersistenceError(f"{model.__name__} has no field '{field_name}'")
            if direction not in SORT_DIRECTIONS:
                raise PersistenceError(f"Invalid sort direction '{direction}'")
            column = columns[field_name]
            clauses.append(column.asc() if direction == 'ASC' else column.desc())

        with self._operation('select', model):
            statement = (
                select(model)
                .filter_by(**(criteria or {}))
                .order_by(*clauses)
                .execution_options(populate_existing=True)
            )
            return list(self.session.scalars(statement).all())


__all__ = ['Repository']
