from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from restgraph.client.call import RestProxyCall
    from restgraph.client.http import Message


@runtime_checkable
class Authorizer(Protocol):
    """
    Capability set every credential strategy must provide.

    Calls built by `new_rest_call` go through `process_call`; raw upload
    messages go through `process_message`. Both mutate their argument in place.
    """

    def process_call(self, call: "RestProxyCall") -> None:
        ...

    def process_message(self, message: "Message") -> None:
        ...


def is_authorizer(obj: Any) -> bool:
    """Return True if `obj` provides both authorizer entry points."""

    if obj is None:
        return False
    return isinstance(obj, Authorizer) and callable(obj.process_call) and callable(
        obj.process_message
    )
