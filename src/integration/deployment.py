"""
In-process deployment of the agreements stack.

Mirrors the network deploy sequence: create the agreements registry, the
one-way griefing template and its factory, then let the registry
administrator authorize the factory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..config.logging import logger
from ..config.settings import AgreementDefaults, Manifest
from ..core.griefing.errors import InvalidParameter
from ..state.token import Token, TokenLedger
from .agreement import OneWayGriefingTemplate
from .factory import OneWayGriefingFactory
from .registry import Registry


@dataclass(frozen=True)
class Deployment:
    registry: Registry
    template: OneWayGriefingTemplate
    factory: OneWayGriefingFactory
    token: Token
    defaults: Optional[AgreementDefaults] = None

    def addresses(self) -> dict[str, Any]:
        return {
            "registry": self.registry.address,
            "registry_name": self.registry.name,
            "template": self.template.address,
            "factory": self.factory.address,
            "token": self.token.address,
        }


def deploy(manifest: Manifest, token: Optional[Token] = None, *, extra_data: bytes = b"") -> Deployment:
    """
    Build registry, template and factory from `manifest` and authorize the factory.

    When `token` is omitted an empty `TokenLedger` is created at the manifest's
    token address.
    """
    if token is None:
        token = TokenLedger(manifest.token_address)
    elif token.address != manifest.token_address:
        raise InvalidParameter(f"token {token.address} does not match manifest token {manifest.token_address}")

    registry = Registry(manifest.registry_admin, name=manifest.registry_name, address=manifest.registry_address)
    logger.info("deployed registry {} at {}", registry.name, registry.address)

    template = OneWayGriefingTemplate(manifest.template_address)
    logger.info("deployed OneWayGriefing template at {}", template.address)

    factory = OneWayGriefingFactory(registry, template, manifest.factory_address)
    logger.info("deployed OneWayGriefing factory at {}", factory.address)

    registry.authorize_factory(manifest.registry_admin, factory.address, extra_data)
    return Deployment(registry=registry, template=template, factory=factory, token=token, defaults=manifest.defaults)
