"""Application module for Link Monitor.

Contains the main application components:
- EventBus: Internal event communication
- MonitorController: Lifecycle and control surface with DI
- PeriodicTimer: Cancellable background timer
"""

from app.controller import MonitorController
from app.dependencies import AppDependencies, create_dependencies
from app.events import Event, EventBus, EventType
from app.timer import PeriodicTimer

__all__ = [
    "AppDependencies",
    "Event",
    "EventBus",
    "EventType",
    "MonitorController",
    "PeriodicTimer",
    "create_dependencies",
]
