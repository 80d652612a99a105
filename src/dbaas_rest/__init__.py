"""REST control plane for provisioning logical databases on SQLAlchemy engines."""

from importlib.metadata import version

from ._app import create_app
from ._connections import EngineConnector, PoolPolicy
from ._lifecycle import DatabaseSpec, LifecycleManager
from ._registry import DatabaseRecord, Registry

__version__ = version("dbaas-rest")
__all__ = [
    "create_app",
    "EngineConnector",
    "PoolPolicy",
    "DatabaseSpec",
    "LifecycleManager",
    "DatabaseRecord",
    "Registry",
]
