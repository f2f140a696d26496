"""
One-way griefing factory.

Creates agreement instances by cloning a single template, registers each one
with the instance registry, and keeps its own creation-ordered list plus the
creator of every instance.

Addresses are derived from the factory address:
- `create`: next creation nonce (only consumed on success)
- `create_salty`: caller-chosen salt, so the address is known in advance
"""

from __future__ import annotations

import threading
from typing import Optional

from ..config.logging import logger
from ..core.griefing.errors import InstanceExists, InvalidParameter
from ..core.griefing.types import Effect, Event, InitParams
from ..state.canonical import derive_address
from ..state.token import Token
from .agreement import Clock, OneWayGriefing, OneWayGriefingTemplate
from .registry import Registry
from .validation import require_address, require_bytes

INSTANCE_LABEL = "instance"


class OneWayGriefingFactory:
    def __init__(self, registry: Registry, template: OneWayGriefingTemplate, address: str):
        self.registry = registry
        self.template = template
        self.address = require_address(address, "factory")
        self._nonce = 0
        self._instances: dict[str, OneWayGriefing] = {}
        self._order: list[str] = []
        self._creators: dict[str, str] = {}
        self._events: list[Effect] = []
        self._lock = threading.Lock()

    # -- Creation ---------------------------------------------------------------

    def _create_at(
        self,
        address: str,
        sender: str,
        token: Token,
        init: InitParams,
        clock: Optional[Clock],
    ) -> OneWayGriefing:
        if address in self._instances:
            raise InstanceExists()
        instance = self.template.clone(address, token, init, clock=clock)
        # The registry refuses unauthorized factories; on failure the clone is dropped.
        self.registry.record_instance(address, self.address, creator=sender)
        self._instances[address] = instance
        self._order.append(address)
        self._creators[address] = sender
        self._events.append(Effect(event=Event.INSTANCE_CREATED, args={"instance": address, "creator": sender}))
        logger.info("factory {}: created agreement {} for {}", self.address, address, sender)
        return instance

    def create(
        self,
        sender: str,
        token: Token,
        init: InitParams,
        clock: Optional[Clock] = None,
    ) -> OneWayGriefing:
        """
        Create, initialize and register a new agreement.

        Raises:
            InvalidParameter: Bad initializer inputs
            UnauthorizedFactory: The registry does not authorize this factory
        """
        sender = require_address(sender, "sender")
        with self._lock:
            address = derive_address(INSTANCE_LABEL, self.address, self._nonce)
            instance = self._create_at(address, sender, token, init, clock)
            self._nonce += 1
        return instance

    def get_salty_address(self, salt: bytes) -> str:
        """Address `create_salty(salt, ...)` would produce."""
        return derive_address(INSTANCE_LABEL, self.address, require_bytes(salt, "salt"))

    def create_salty(
        self,
        sender: str,
        salt: bytes,
        token: Token,
        init: InitParams,
        clock: Optional[Clock] = None,
    ) -> OneWayGriefing:
        """Like `create`, at the address predicted by `get_salty_address(salt)`.

        Raises:
            InstanceExists: `salt` was already used by this factory
        """
        sender = require_address(sender, "sender")
        address = self.get_salty_address(salt)
        with self._lock:
            return self._create_at(address, sender, token, init, clock)

    # -- Enumeration ------------------------------------------------------------

    def get_instance_count(self) -> int:
        return len(self._order)

    def get_instance(self, index: int) -> OneWayGriefing:
        return self._instances[self._order[index]]

    def get_instances(self) -> list[str]:
        return list(self._order)

    def get_paginated_instances(self, start: int, end: int) -> list[str]:
        if not (0 <= start < end <= len(self._order)):
            raise InvalidParameter(f"bad page [{start}, {end}) of {len(self._order)} instances")
        return self._order[start:end]

    def get_instance_creator(self, instance: str) -> Optional[str]:
        return self._creators.get(require_address(instance, "instance"))

    def get_template(self) -> str:
        return self.template.address

    def get_instance_registry(self) -> str:
        return self.registry.address or ""

    @property
    def events(self) -> tuple[Effect, ...]:
        return tuple(self._events)

    def __repr__(self) -> str:
        return f"OneWayGriefingFactory({self.address}, instances={len(self._order)})"
