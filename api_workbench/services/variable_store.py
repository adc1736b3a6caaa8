"""
Loading and saving variable scopes with their secrets.

`VariableStore` is the only place that joins the entity repositories with
the secret store: environments and collections come out with secrets
merged into ``variables`` and go back in with secrets split off. Saves
write the whole mapping, so concurrent writers are last-writer-wins.
"""

import logging
import uuid

from sqlalchemy.orm import Session

from ..exceptions import ResourceNotFoundError
from ..schemas.collection import Collection
from ..schemas.environment import Environment
from .repository import Repository, collection_repository, environment_repository
from .secret_store import (
    COLLECTION,
    ENVIRONMENT,
    SecretStore,
    SqlSecretStore,
    merge_secrets,
    separate_secrets,
)


logger = logging.getLogger(__name__)


class VariableStore:
    def __init__(
        self,
        environments: Repository[Environment],
        collections: Repository[Collection],
        secrets: SecretStore,
    ):
        self.environments = environments
        self.collections = collections
        self.secrets = secrets

    # Environments

    def load_environment(self, environment_id: uuid.UUID) -> Environment | None:
        environment = self.environments.get_by_id(environment_id)
        if environment is None:
            return None
        secrets = self.secrets.get_secrets(ENVIRONMENT, environment.id)
        environment.variables = merge_secrets(environment.variables, secrets)
        return environment

    def list_environments(self) -> list[Environment]:
        return [self.load_environment(environment.id) for environment in self.environments.get_all()]

    def get_active_environment_id(self) -> uuid.UUID | None:
        for environment in self.environments.get_all():
            if environment.is_active:
                return environment.id
        return None

    def get_active_environment(self) -> Environment | None:
        environment_id = self.get_active_environment_id()
        return self.load_environment(environment_id) if environment_id is not None else None

    def _split_environment(self, environment: Environment) -> Environment:
        plain, secret = separate_secrets(environment.variables, environment.secret_variable_names)
        self.secrets.save_secrets(ENVIRONMENT, environment.id, secret)
        return environment.model_copy(update={"variables": plain}, deep=True)

    def add_environment(self, environment: Environment) -> Environment:
        if environment.is_active:
            self._deactivate_others(environment.id)
        self.environments.add(self._split_environment(environment))
        return environment

    def save_environment(self, environment: Environment) -> Environment:
        if environment.is_active:
            self._deactivate_others(environment.id)
        self.environments.update(self._split_environment(environment))
        return environment

    def delete_environment(self, environment_id: uuid.UUID) -> bool:
        deleted = self.environments.delete(environment_id)
        if deleted:
            self.secrets.delete_secrets(ENVIRONMENT, environment_id)
        return deleted

    def _deactivate_others(self, environment_id: uuid.UUID) -> None:
        others = [
            environment
            for environment in self.environments.get_all()
            if environment.is_active and environment.id != environment_id
        ]
        for environment in others:
            environment.is_active = False
        if others:
            self.environments.update_range(others)

    def activate_environment(self, environment_id: uuid.UUID) -> Environment:
        """Make one environment the active one, deactivating all others."""
        environment = self.environments.get_by_id(environment_id)
        if environment is None:
            raise ResourceNotFoundError("Environment", environment_id)
        self._deactivate_others(environment_id)
        environment.is_active = True
        self.environments.update(environment)
        logger.info("Activated environment %s (%s)", environment.name, environment.id)
        return self.load_environment(environment_id)

    # Collections

    def load_collection(self, collection_id: uuid.UUID) -> Collection | None:
        collection = self.collections.get_by_id(collection_id)
        if collection is None:
            return None
        secrets = self.secrets.get_secrets(COLLECTION, collection.id)
        collection.variables = merge_secrets(collection.variables, secrets)
        return collection

    def _split_collection(self, collection: Collection) -> Collection:
        plain, secret = separate_secrets(collection.variables, collection.secret_variable_names)
        self.secrets.save_secrets(COLLECTION, collection.id, secret)
        return collection.model_copy(update={"variables": plain}, deep=True)

    def add_collection(self, collection: Collection) -> Collection:
        self.collections.add(self._split_collection(collection))
        return collection

    def save_collection(self, collection: Collection) -> Collection:
        self.collections.update(self._split_collection(collection))
        return collection

    def delete_collection(self, collection_id: uuid.UUID) -> bool:
        deleted = self.collections.delete(collection_id)
        if deleted:
            self.secrets.delete_secrets(COLLECTION, collection_id)
        return deleted


def sql_variable_store(db: Session) -> VariableStore:
    return VariableStore(environment_repository(db), collection_repository(db), SqlSecretStore(db))
