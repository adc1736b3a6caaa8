"""
Secret variable storage.

Secret values are keyed by owning entity (type + id) and stored apart from
the environment/collection record. They are merged into the variable
mapping only in memory, right before resolution.
"""

import uuid
from typing import Protocol

from sqlalchemy.orm import Session

from ..models.secret import Secret


ENVIRONMENT = "environment"
COLLECTION = "collection"


class SecretStore(Protocol):
    def get_secrets(self, entity_type: str, entity_id: uuid.UUID) -> dict[str, str]: ...

    def save_secrets(self, entity_type: str, entity_id: uuid.UUID, secrets: dict[str, str]) -> None: ...

    def delete_secrets(self, entity_type: str, entity_id: uuid.UUID) -> None: ...


def separate_secrets(
    variables: dict[str, str],
    secret_names: set[str],
) -> tuple[dict[str, str], dict[str, str]]:
    """
    Split a variable mapping into (plain, secret) by the secret-name set.

    Example:
        >>> separate_secrets({"host": "x", "token": "t"}, {"token"})
        ({'host': 'x'}, {'token': 't'})
    """
    plain: dict[str, str] = {}
    secret: dict[str, str] = {}
    for name, value in variables.items():
        if name in secret_names:
            secret[name] = value
        else:
            plain[name] = value
    return plain, secret


def merge_secrets(variables: dict[str, str], secrets: dict[str, str]) -> dict[str, str]:
    """Return ``variables`` with the secret values laid over them."""
    merged = dict(variables)
    merged.update(secrets)
    return merged


class InMemorySecretStore:
    def __init__(self):
        self._secrets: dict[tuple[str, uuid.UUID], dict[str, str]] = {}

    def get_secrets(self, entity_type: str, entity_id: uuid.UUID) -> dict[str, str]:
        return dict(self._secrets.get((entity_type, entity_id), {}))

    def save_secrets(self, entity_type: str, entity_id: uuid.UUID, secrets: dict[str, str]) -> None:
        self._secrets[(entity_type, entity_id)] = dict(secrets)

    def delete_secrets(self, entity_type: str, entity_id: uuid.UUID) -> None:
        self._secrets.pop((entity_type, entity_id), None)


class SqlSecretStore:
    """Secret store backed by the ``secrets`` table."""

    def __init__(self, db: Session):
        self.db = db

    def _rows(self, entity_type: str, entity_id: uuid.UUID):
        return self.db.query(Secret).filter(
            Secret.entity_type == entity_type,
            Secret.entity_id == entity_id,
        )

    def get_secrets(self, entity_type: str, entity_id: uuid.UUID) -> dict[str, str]:
        return {row.name: row.value for row in self._rows(entity_type, entity_id).all()}

    def save_secrets(self, entity_type: str, entity_id: uuid.UUID, secrets: dict[str, str]) -> None:
        """Replace the secret set of an entity."""
        self._rows(entity_type, entity_id).delete(synchronize_session=False)
        for name, value in secrets.items():
            self.db.add(Secret(entity_type=entity_type, entity_id=entity_id, name=name, value=value))
        self.db.commit()

    def delete_secrets(self, entity_type: str, entity_id: uuid.UUID) -> None:
        self._rows(entity_type, entity_id).delete(synchronize_session=False)
        self.db.commit()
