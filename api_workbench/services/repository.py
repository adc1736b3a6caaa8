"""
Repository abstraction over stored entities.

The execution core only sees `Repository`; `SqlRepository` backs it with
the SQLAlchemy models and `InMemoryRepository` is used by tests and by
callers that keep entities in memory.
"""

import uuid
from typing import Any, Callable, Generic, Iterable, Protocol, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import utc_now
from ..exceptions import ResourceNotFoundError
from ..models.collection import Collection as CollectionModel
from ..models.environment import Environment as EnvironmentModel
from ..models.flow import Flow as FlowModel, FlowStep as FlowStepModel
from ..models.request import Request as RequestModel
from ..schemas.collection import Collection
from ..schemas.environment import Environment
from ..schemas.flow import Flow, FlowStep
from ..schemas.request import Request, request_adapter
from ..schemas.variables import DynamicVariable


T = TypeVar("T", bound=BaseModel)


class Repository(Protocol[T]):
    def get_by_id(self, entity_id: uuid.UUID) -> T | None: ...

    def get_all(self) -> list[T]: ...

    def add(self, entity: T) -> T: ...

    def update(self, entity: T) -> T: ...

    def delete(self, entity_id: uuid.UUID) -> bool: ...

    def add_range(self, entities: Iterable[T]) -> list[T]: ...

    def update_range(self, entities: Iterable[T]) -> list[T]: ...

    def delete_range(self, entity_ids: Iterable[uuid.UUID]) -> int: ...


class InMemoryRepository(Generic[T]):
    """
    Dictionary-backed repository.

    Entities are copied on the way in and out, so callers never share state
    with what is stored.
    """

    def __init__(self, resource_name: str, entities: Iterable[T] = ()):
        self.resource_name = resource_name
        self._items: dict[uuid.UUID, T] = {}
        for entity in entities:
            self._items[entity.id] = entity.model_copy(deep=True)

    def get_by_id(self, entity_id: uuid.UUID) -> T | None:
        entity = self._items.get(entity_id)
        return entity.model_copy(deep=True) if entity is not None else None

    def get_all(self) -> list[T]:
        return [entity.model_copy(deep=True) for entity in self._items.values()]

    def add(self, entity: T) -> T:
        self._items[entity.id] = entity.model_copy(deep=True)
        return entity

    def update(self, entity: T) -> T:
        if entity.id not in self._items:
            raise ResourceNotFoundError(self.resource_name, entity.id)
        self._items[entity.id] = entity.model_copy(deep=True)
        return entity

    def delete(self, entity_id: uuid.UUID) -> bool:
        return self._items.pop(entity_id, None) is not None

    def add_range(self, entities: Iterable[T]) -> list[T]:
        return [self.add(entity) for entity in entities]

    def update_range(self, entities: Iterable[T]) -> list[T]:
        return [self.update(entity) for entity in entities]

    def delete_range(self, entity_ids: Iterable[uuid.UUID]) -> int:
        return sum(1 for entity_id in entity_ids if self.delete(entity_id))


class SqlRepository(Generic[T]):
    """
    Repository backed by one SQLAlchemy model.

    Args:
        db: Database session
        model: ORM class
        to_domain: Converts a row into the domain schema
        apply: Copies a domain entity onto a row
        resource_name: Name used in not-found errors
    """

    def __init__(
        self,
        db: Session,
        model: type,
        to_domain: Callable[[Any], T],
        apply: Callable[[T, Any], None],
        resource_name: str,
    ):
        self.db = db
        self.model = model
        self.to_domain = to_domain
        self.apply = apply
        self.resource_name = resource_name

    def get_by_id(self, entity_id: uuid.UUID) -> T | None:
        row = self.db.get(self.model, entity_id)
        return self.to_domain(row) if row is not None else None

    def get_all(self) -> list[T]:
        return [self.to_domain(row) for row in self.db.query(self.model).all()]

    def _add_row(self, entity: T) -> Any:
        row = self.model(id=entity.id)
        self.apply(entity, row)
        self.db.add(row)
        return row

    def _update_row(self, entity: T) -> Any:
        row = self.db.get(self.model, entity.id)
        if row is None:
            raise ResourceNotFoundError(self.resource_name, entity.id)
        self.apply(entity, row)
        return row

    def add(self, entity: T) -> T:
        row = self._add_row(entity)
        self.db.commit()
        self.db.refresh(row)
        return self.to_domain(row)

    def update(self, entity: T) -> T:
        row = self._update_row(entity)
        self.db.commit()
        self.db.refresh(row)
        return self.to_domain(row)

    def delete(self, entity_id: uuid.UUID) -> bool:
        row = self.db.get(self.model, entity_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def add_range(self, entities: Iterable[T]) -> list[T]:
        rows = [self._add_row(entity) for entity in entities]
        self.db.commit()
        return [self.to_domain(row) for row in rows]

    def update_range(self, entities: Iterable[T]) -> list[T]:
        rows = [self._update_row(entity) for entity in entities]
        self.db.commit()
        return [self.to_domain(row) for row in rows]

    def delete_range(self, entity_ids: Iterable[uuid.UUID]) -> int:
        deleted = 0
        for entity_id in entity_ids:
            row = self.db.get(self.model, entity_id)
            if row is not None:
                self.db.delete(row)
                deleted += 1
        self.db.commit()
        return deleted


# Mappers between rows and domain entities

def _dynamic_variables(data: list | None) -> list[DynamicVariable]:
    return [DynamicVariable.model_validate(item) for item in data or []]


def _dump_dynamic_variables(dynamic_variables: list[DynamicVariable]) -> list[dict]:
    return [item.model_dump(mode="json") for item in dynamic_variables]


def environment_to_domain(row: EnvironmentModel) -> Environment:
    return Environment(
        id=row.id,
        name=row.name,
        description=row.description,
        variables=dict(row.variables or {}),
        secret_variable_names=set(row.secret_variable_names or []),
        dynamic_variables=_dynamic_variables(row.dynamic_variables),
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def apply_environment(entity: Environment, row: EnvironmentModel) -> None:
    row.name = entity.name
    row.description = entity.description
    row.variables = dict(entity.variables)
    row.secret_variable_names = sorted(entity.secret_variable_names)
    row.dynamic_variables = _dump_dynamic_variables(entity.dynamic_variables)
    row.is_active = entity.is_active
    row.updated_at = utc_now()


def collection_to_domain(row: CollectionModel) -> Collection:
    return Collection(
        id=row.id,
        name=row.name,
        description=row.description,
        parent_id=row.parent_id,
        variables=dict(row.variables or {}),
        secret_variable_names=set(row.secret_variable_names or []),
        dynamic_variables=_dynamic_variables(row.dynamic_variables),
        sort_order=row.sort_order,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def apply_collection(entity: Collection, row: CollectionModel) -> None:
    row.name = entity.name
    row.description = entity.description
    row.parent_id = entity.parent_id
    row.variables = dict(entity.variables)
    row.secret_variable_names = sorted(entity.secret_variable_names)
    row.dynamic_variables = _dump_dynamic_variables(entity.dynamic_variables)
    row.sort_order = entity.sort_order
    row.updated_at = utc_now()


# Stored as columns rather than inside the payload
_REQUEST_COLUMNS = {"id", "request_type", "name", "url", "collection_id", "sort_order", "created_at"}


def request_to_domain(row: RequestModel) -> Request:
    data = dict(row.payload or {})
    data.update(
        id=row.id,
        request_type=row.request_type,
        name=row.name,
        url=row.url,
        collection_id=row.collection_id,
        sort_order=row.sort_order,
        created_at=row.created_at,
    )
    return request_adapter.validate_python(data)


def apply_request(entity: Request, row: RequestModel) -> None:
    row.request_type = entity.request_type
    row.name = entity.name
    row.url = entity.url
    row.collection_id = entity.collection_id
    row.sort_order = entity.sort_order
    row.created_at = entity.created_at
    row.payload = entity.model_dump(mode="json", exclude=_REQUEST_COLUMNS)
    row.updated_at = utc_now()


def flow_to_domain(row: FlowModel) -> Flow:
    return Flow(
        id=row.id,
        name=row.name,
        description=row.description,
        collection_id=row.collection_id,
        steps=[FlowStep.model_validate(step) for step in row.steps],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def apply_flow(entity: Flow, row: FlowModel) -> None:
    row.name = entity.name
    row.description = entity.description
    row.collection_id = entity.collection_id

    # Keep rows of surviving steps so their primary keys are not re-inserted
    existing = {step.id: step for step in row.steps}
    steps = []
    for step in entity.steps:
        step_row = existing.get(step.id) or FlowStepModel(id=step.id)
        step_row.request_id = step.request_id
        step_row.order = step.order
        step_row.is_enabled = step.is_enabled
        step_row.continue_on_error = step.continue_on_error
        step_row.delay_ms = step.delay_ms
        steps.append(step_row)
    row.steps = steps
    row.updated_at = utc_now()


def environment_repository(db: Session) -> SqlRepository[Environment]:
    return SqlRepository(db, EnvironmentModel, environment_to_domain, apply_environment, "Environment")


def collection_repository(db: Session) -> SqlRepository[Collection]:
    return SqlRepository(db, CollectionModel, collection_to_domain, apply_collection, "Collection")


def request_repository(db: Session) -> SqlRepository[Request]:
    return SqlRepository(db, RequestModel, request_to_domain, apply_request, "Request")


def flow_repository(db: Session) -> SqlRepository[Flow]:
    return SqlRepository(db, FlowModel, flow_to_domain, apply_flow, "Flow")
