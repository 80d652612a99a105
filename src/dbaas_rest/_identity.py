"""Identity allocation for newly provisioned databases."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ._errors import ExecFailure

if TYPE_CHECKING:
    from ._connections import EngineConnector, Handle


def allocate_id(connector: EngineConnector, handle: Handle) -> str:
    """Ask the engine for a short numeric identity.

    The handle must be scoped to the just-created database and already verified.
    Identity generation is left to the engine (``UUID_SHORT()`` on MySQL) so ids
    stay monotonic per server without any client-side state.

    Raises:
        ExecFailure: If the query fails or does not yield a number.
        EngineTimeout: If the engine does not answer within the deadline.
    """
    value = connector.fetch_scalar(handle, handle.identity_query)
    if value is None:
        raise ExecFailure(f"Identity query on '{handle.engine_id}' returned no value")
    try:
        return str(int(value))
    except (TypeError, ValueError) as exc:
        raise ExecFailure(
            f"Identity query on '{handle.engine_id}' returned non-numeric value {value!r}"
        ) from exc
