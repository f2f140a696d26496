"""
Instance registry: factory allow-list plus append-only provenance.

The registry administrator authorizes (and may retire) factories. Only an
authorized factory may record an instance, and each instance is recorded at
most once, so downstream consumers can trust "registered" as "created by an
audited factory".
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from ..config.logging import logger
from ..core.griefing.errors import (
    InstanceAlreadyRegistered,
    InvalidParameter,
    NotAdministrator,
    UnauthorizedFactory,
)
from ..core.griefing.types import Effect, Event
from .validation import require_address


@dataclass(frozen=True)
class FactoryRecord:
    factory: str
    factory_id: int
    extra_data: bytes
    retired: bool = False


@dataclass(frozen=True)
class InstanceRecord:
    instance: str
    factory: str
    creator: Optional[str]
    index: int


class Registry:
    """Allow-list of factories and provenance of the instances they created."""

    def __init__(self, admin: str, *, name: str = "Erasure_Agreements", address: Optional[str] = None):
        self.admin = require_address(admin, "admin")
        self.name = name
        self.address = None if address is None else require_address(address, "registry")
        self._factories: dict[str, FactoryRecord] = {}
        self._factory_order: list[str] = []
        self._instances: dict[str, InstanceRecord] = {}
        self._instance_order: list[str] = []
        self._events: list[Effect] = []
        self._lock = threading.Lock()

    # -- Administration ---------------------------------------------------------

    def _require_admin(self, sender: str) -> None:
        if require_address(sender, "sender") != self.admin:
            raise NotAdministrator()

    def authorize_factory(self, sender: str, factory: str, extra_data: bytes = b"") -> None:
        """Authorize `factory` (administrator only). Re-authorizing is a no-op."""
        self._require_admin(sender)
        factory = require_address(factory, "factory")
        with self._lock:
            record = self._factories.get(factory)
            if record is not None and not record.retired:
                return
            if record is None:
                record = FactoryRecord(factory=factory, factory_id=len(self._factory_order), extra_data=bytes(extra_data))
                self._factory_order.append(factory)
            else:
                record = FactoryRecord(
                    factory=factory, factory_id=record.factory_id, extra_data=bytes(extra_data), retired=False,
                )
            self._factories[factory] = record
            self._events.append(
                Effect(event=Event.FACTORY_ADDED, args={"factory": factory, "factory_id": record.factory_id})
            )
        logger.info("registry {}: authorized factory {} (id={})", self.name, factory, record.factory_id)

    def retire_factory(self, sender: str, factory: str) -> None:
        """Stop `factory` from recording new instances. Existing provenance is kept."""
        self._require_admin(sender)
        factory = require_address(factory, "factory")
        with self._lock:
            record = self._factories.get(factory)
            if record is None or record.retired:
                raise UnauthorizedFactory()
            self._factories[factory] = FactoryRecord(
                factory=factory, factory_id=record.factory_id, extra_data=record.extra_data, retired=True,
            )
            self._events.append(
                Effect(event=Event.FACTORY_RETIRED, args={"factory": factory, "factory_id": record.factory_id})
            )
        logger.info("registry {}: retired factory {}", self.name, factory)

    # -- Provenance -------------------------------------------------------------

    def is_authorized(self, factory: str) -> bool:
        record = self._factories.get(require_address(factory, "factory"))
        return record is not None and not record.retired

    def record_instance(self, instance: str, factory: str, creator: Optional[str] = None) -> None:
        """
        Record that `factory` created `instance`.

        Raises:
            UnauthorizedFactory: If `factory` is not currently authorized
            InstanceAlreadyRegistered: If `instance` was recorded for another factory
        """
        instance = require_address(instance, "instance")
        factory = require_address(factory, "factory")
        creator = None if creator is None else require_address(creator, "creator")
        with self._lock:
            if not self.is_authorized(factory):
                raise UnauthorizedFactory()
            existing = self._instances.get(instance)
            if existing is not None:
                if existing.factory == factory:
                    return
                raise InstanceAlreadyRegistered()
            record = InstanceRecord(instance=instance, factory=factory, creator=creator, index=len(self._instance_order))
            self._instances[instance] = record
            self._instance_order.append(instance)
            self._events.append(
                Effect(
                    event=Event.INSTANCE_REGISTERED,
                    args={"instance": instance, "index": record.index, "creator": creator, "factory": factory},
                )
            )
        logger.info("registry {}: recorded instance {} from factory {}", self.name, instance, factory)

    def get_factory(self, instance: str) -> Optional[str]:
        """Factory that created `instance`, or None if unregistered."""
        record = self._instances.get(require_address(instance, "instance"))
        return None if record is None else record.factory

    def get_instance_record(self, instance: str) -> Optional[InstanceRecord]:
        return self._instances.get(require_address(instance, "instance"))

    def is_registered_instance(self, instance: str) -> bool:
        return require_address(instance, "instance") in self._instances

    # -- Enumeration --------------------------------------------------------------

    def get_instance_count(self) -> int:
        return len(self._instance_order)

    def get_instance(self, index: int) -> str:
        return self._instance_order[index]

    def get_instances(self) -> list[str]:
        return list(self._instance_order)

    def get_paginated_instances(self, start: int, end: int) -> list[str]:
        if not (0 <= start < end <= len(self._instance_order)):
            raise InvalidParameter(f"bad page [{start}, {end}) of {len(self._instance_order)} instances")
        return self._instance_order[start:end]

    def get_factory_count(self) -> int:
        return len(self._factory_order)

    def get_factories(self) -> list[str]:
        return list(self._factory_order)

    def get_factory_record(self, factory: str) -> Optional[FactoryRecord]:
        return self._factories.get(require_address(factory, "factory"))

    def get_factory_data(self, factory: str) -> bytes:
        record = self.get_factory_record(factory)
        if record is None:
            raise UnauthorizedFactory()
        return record.extra_data

    @property
    def events(self) -> tuple[Effect, ...]:
        return tuple(self._events)

    def __repr__(self) -> str:
        return f"Registry({self.name}, factories={len(self._factory_order)}, instances={len(self._instance_order)})"
