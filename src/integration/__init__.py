"""
Integration shells: agreement instances, factory, registry, deployment
"""

from .agreement import OneWayGriefing, OneWayGriefingTemplate, wall_clock
from .deployment import Deployment, deploy
from .factory import OneWayGriefingFactory
from .registry import FactoryRecord, InstanceRecord, Registry

__all__ = [
    "OneWayGriefing",
    "OneWayGriefingTemplate",
    "wall_clock",
    "Deployment",
    "deploy",
    "OneWayGriefingFactory",
    "FactoryRecord",
    "InstanceRecord",
    "Registry",
]
