"""
Resource controllers

One generic controller implements the five CRUD operations for any entity;
concrete controllers only declare their model and JSON fields, and override
the lifecycle methods when they need to.

Usage:
    # resources.py
    from cube_api.controller import Field, ResourceController

    class VatController(ResourceController):
        model = Vat
        fields = {
            'name': Field('name'),
            'rate': Field('rate', 'float'),
            'description': Field('description'),
        }

        def before_insert(self, entity, values):
            entity.name = entity.name.strip()
"""

import inspect
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Optional, Tuple, Type

from flask import request

from .errors import NotFoundError, ValidationError
from .models import DATETIME_FORMAT, Entity
from .routing import MAX_ID, HandlerId, RouteTable

FIELD_KINDS = ('str', 'int', 'float', 'bool', 'datetime', 'ref')

_TRUE = ('true', '1', 'yes')
_FALSE = ('false', '0', 'no')


@dataclass(frozen=True)
class Field:
    """
    One JSON field of a resource

    Args:
        attr: Model attribute the value is written to
        kind: str, int, float, bool, datetime or ref
        required: Must be present (and not null) on create
        ref: Referenced model for kind='ref'; the JSON value is its id
        max_length: Longest accepted string; defaults to the column length
    """

    attr: str
    kind: str = 'str'
    required: bool = True
    ref: Optional[Type[Entity]] = None
    max_length: Optional[int] = None

    def __post_init__(self):
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"Unknown field kind: {self.kind}")
        if (self.kind == 'ref') != (self.ref is not None):
            raise ValueError(f"Field '{self.attr}': ref must be set for, and only for, kind='ref'")

    def coerce(self, name: str, value):
        """Check the type of a JSON value, return the value to store"""
        if value is None:
            if self.required:
                raise ValidationError(f"Field '{name}' cannot be null")
            return None

        kind = self.kind
        if kind == 'str':
            if not isinstance(value, str):
                raise ValidationError(f"Field '{name}' must be a string")
            if self.max_length is not None and len(value) > self.max_length:
                raise ValidationError(f"Field '{name}' must be at most {self.max_length} characters")
            return value
        if kind in ('int', 'ref'):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"Field '{name}' must be an integer")
            check_id_range(name, value)
            return value
        if kind == 'float':
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"Field '{name}' must be a number")
            return float(value)
        if kind == 'bool':
            if not isinstance(value, bool):
                raise ValidationError(f"Field '{name}' must be a boolean")
            return value
        # datetime
        if not isinstance(value, str):
            raise ValidationError(f"Field '{name}' must be a date string")
        return parse_datetime(name, value)

    def coerce_query(self, name: str, raw: str):
        """Same as coerce, for a query string value"""
        try:
            if self.kind in ('int', 'ref'):
                return check_id_range(name, int(raw), 'Filter')
            if self.kind == 'float':
                return float(raw)
        except ValueError:
            raise ValidationError(f"Filter '{name}' must be a number")

        if self.kind == 'bool':
            lowered = raw.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValidationError(f"Filter '{name}' must be true or false")
        if self.kind == 'datetime':
            return parse_datetime(name, raw)
        return raw

    def sized_for(self, model) -> 'Field':
        """Copy carrying the length of the backing string column"""
        if self.kind != 'str' or self.max_length is not None:
            return self
        column = model.__table__.columns.get(self.attr)
        length = getattr(column.type, 'length', None) if column is not None else None
        return replace(self, max_length=length) if length else self


def check_id_range(name: str, value: int, what: str = 'Field') -> int:
    if not -MAX_ID - 1 <= value <= MAX_ID:
        raise ValidationError(f"{what} '{name}' is out of range")
    return value


def parse_datetime(name: str, value: str) -> datetime:
    for parse in (lambda v: datetime.strptime(v, DATETIME_FORMAT), datetime.fromisoformat):
        try:
            return parse(value)
        except ValueError:
            continue
    raise ValidationError(f"Field '{name}' must be formatted as YYYY-MM-DD HH:MM:SS")


class ResourceController:
    """
    Generic CRUD controller

    Collaborators listed in `requires` are injected by the registry as
    attributes of the same name. Every operation returns an Envelope; errors
    are raised and turned into responses by the application boundary.
    """

    model: Type[Entity] = None
    label: str = None
    fields: Dict[str, Field] = {}
    requires: Tuple[str, ...] = ('repository', 'responder')

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.model is not None and 'fields' in cls.__dict__:
            cls.fields = {name: spec.sized_for(cls.model) for name, spec in cls.fields.items()}

    def __init__(self, **services):
        missing = [name for name in self.requires if name not in services]
        if missing:
            raise TypeError(f"{self.__class__.__name__} requires: {', '.join(missing)}")
        for name in self.requires:
            setattr(self, name, services[name])
        self.logger = logging.getLogger(f"cube_api.controllers.{self.__class__.__name__}")

    @property
    def name(self) -> str:
        return self.label or self.model.__name__

    # ============================================
    # LIFECYCLE METHODS - Override in subclass
    # ============================================

    def before_insert(self, entity, values):
        """Called after validation, before the entity is added"""
        pass

    def before_update(self, entity, values):
        """Called after validation, before the changes are flushed"""
        pass

    def serialize(self, entity) -> dict:
        return entity.to_dict()

    # ============================================
    # OPERATIONS
    # ============================================

    def create(self):
        values = self.validate(self.json_body(), partial=False)
        entity = self.model()
        self.apply(entity, self.resolve_references(values))
        self.before_insert(entity, values)
        self.repository.add(entity)
        return self.responder.status(201, f"{self.name} created")

    def list(self):
        criteria, order = self.query_criteria()
        if order:
            entities = self.repository.get_by_order(self.model, criteria, order)
        else:
            entities = self.repository.get_all_by(self.model, criteria)
        return self.responder.data(
            200, [self.serialize(e) for e in entities], f"{self.name} list found")

    def get(self, id: int):
        entity = self.load(id)
        return self.responder.data(200, self.serialize(entity), f"{self.name} found")

    def update(self, id: int):
        values = self.validate(self.json_body(), partial=True)
        entity = self.load(id)
        self.apply(entity, self.resolve_references(values))
        self.before_update(entity, values)
        self.repository.update(entity)
        return self.responder.status(200, f"{self.name} updated successfully")

    def delete(self, id: int):
        entity = self.load(id)
        self.repository.delete(entity)
        return self.responder.status(200, f"{self.name} deleted successfully")

    def list_by(self, attr: str, value):
        """Every entity whose `attr` equals `value` (per-parent listings)"""
        entities = self.repository.get_all_by(self.model, {attr: value})
        return self.responder.data(
            200, [self.serialize(e) for e in entities], f"{self.name} list found")

    # ============================================
    # HELPERS
    # ============================================

    def json_body(self) -> dict:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')
        return data

    def load(self, id: int):
        entity = self.repository.get_one(self.model, id)
        if entity is None:
            raise NotFoundError(f"{self.name} not found")
        return entity

    def validate(self, data: dict, partial: bool) -> Dict[str, object]:
        """
        Check presence and types of the known fields in `data`

        Returns:
            {json field name: coerced value}; unknown keys are dropped

        Raises:
            ValidationError: missing required field (create), no known field
                at all (update), or wrong type
        """
        if not partial:
            missing = [
                name for name, spec in self.fields.items()
                if spec.required and data.get(name) is None
            ]
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        values = {}
        for name, spec in self.fields.items():
            if name in data:
                values[name] = spec.coerce(name, data[name])

        if partial and not values:
            raise ValidationError(
                f"Invalid request data, expected at least one of: {', '.join(self.fields)}")
        return values

    def resolve_references(self, values: Dict[str, object]) -> Dict[str, object]:
        """Replace referenced ids with the entities they name"""
        resolved = dict(values)
        for name, value in values.items():
            spec = self.fields[name]
            if spec.kind != 'ref' or value is None:
                continue
            target = self.repository.get_one(spec.ref, value)
            if target is None:
                raise NotFoundError(f"{spec.ref.__name__} not found")
            resolved[name] = target
        return resolved

    def apply(self, entity, values: Dict[str, object]):
        for name, value in values.items():
            spec = self.fields[name]
            if spec.kind == 'ref':
                # company_id -> company relationship
                setattr(entity, spec.attr[:-3] if spec.attr.endswith('_id') else spec.attr, value)
            else:
                setattr(entity, spec.attr, value)

    def query_criteria(self):
        """
        Criteria and sort order from the query string

        `?companyId=3&order_by=name desc` -> ({'company_id': 3}, {'name': 'DESC'})
        """
        filterable = {
            name: spec for name, spec in self.fields.items()
            if spec.attr not in self.model.__hidden__
        }
        filterable.setdefault('id', Field('id', 'int'))

        criteria = {}
        order = {}
        for key, raw in request.args.items():
            if key == 'order_by':
                order = self._parse_order(raw, filterable)
                continue
            spec = filterable.get(key)
            if spec is None:
                raise ValidationError(f"Unknown filter field '{key}'")
            criteria[spec.attr] = spec.coerce_query(key, raw)
        return criteria, order

    @staticmethod
    def _parse_order(raw: str, filterable: Dict[str, Field]) -> Dict[str, str]:
        order = {}
        for clause in raw.split(','):
            parts = clause.split()
            if not parts:
                continue
            name = parts[0]
            direction = parts[1].upper() if len(parts) > 1 else 'ASC'
            if name not in filterable or direction not in ('ASC', 'DESC') or len(parts) > 2:
                raise ValidationError(f"Invalid order_by clause '{clause.strip()}'")
            order[filterable[name].attr] = direction
        return order


class ControllerRegistry:
    """
    Registry of controllers and of the services they are built with

    Controllers are constructed per request with exactly the collaborators
    they list in `requires`.
    """

    def __init__(self, logger=None):
        self._controllers: Dict[str, Type[ResourceController]] = {}
        self._services: Dict[str, object] = {}
        self.logger = logger or logging.getLogger(__name__)

    def provide(self, name: str, service):
        """Make a collaborator available to controllers"""
        self._services[name] = service

    def register(self, name: str, controller_class: Type[ResourceController]):
        """
        Register a controller class under the name used in handler ids

        Args:
            name: Controller name, e.g. 'users'
            controller_class: Subclass of ResourceController
        """
        if not (isinstance(controller_class, type) and issubclass(controller_class, ResourceController)):
            raise TypeError(f"{controller_class!r} is not a ResourceController")
        if name in self._controllers:
            raise ValueError(f"Controller already registered: {name}")

        self._controllers[name] = controller_class
        self.logger.debug(f"Registered controller: {name} -> {controller_class.__name__}")

    def get_controller(self, name: str) -> Optional[Type[ResourceController]]:
        return self._controllers.get(name)

    def has_controller(self, name: str) -> bool:
        return name in self._controllers

    def list_controllers(self) -> Dict[str, str]:
        return {name: cls.__name__ for name, cls in self._controllers.items()}

    def resolve(self, handler: HandlerId) -> Tuple[ResourceController, str]:
        """
        Build the controller owning `handler`

        Returns:
            (controller instance, operation name)
        """
        controller_class = self._controllers.get(handler.controller)
        if controller_class is None:
            raise LookupError(f"No controller registered for handler {handler}")

        services = {}
        for name in controller_class.requires:
            if name not in self._services:
                raise LookupError(f"{controller_class.__name__} requires unknown service '{name}'")
            services[name] = self._services[name]
        return controller_class(**services), handler.action

    def check_routes(self, table: RouteTable):
        """
        Verify every route points at an existing operation taking exactly the
        route's path parameters. Meant to run once at startup.

        Raises:
            LookupError: listing every broken route
        """
        problems = []
        for route in table:
            handler = route.handler
            controller_class = self._controllers.get(handler.controller)
            if controller_class is None:
                problems.append(f"{route.method} {route.pattern}: unknown controller '{handler.controller}'")
                continue

            missing = [name for name in controller_class.requires if name not in self._services]
            if missing:
                problems.append(f"{controller_class.__name__}: missing services {missing}")

            operation = getattr(controller_class, handler.action, None)
            if handler.action.startswith('_') or not callable(operation):
                problems.append(f"{route.method} {route.pattern}: unknown operation '{handler}'")
                continue

            arity = len(inspect.signature(operation).parameters) - 1
            if arity != len(route.param_names):
                problems.append(
                    f"{route.method} {route.pattern}: '{handler}' takes {arity} argument(s), "
                    f"route provides {len(route.param_names)}")

        if problems:
            raise LookupError('Invalid route table:\n  ' + '\n  '.join(problems))


__all__ = [
    'Field',
    'ResourceController',
    'ControllerRegistry',
]
