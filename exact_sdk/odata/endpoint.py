"""
exact_sdk.odata.endpoint - Entity endpoint access
=================================================

Endpoint-scoped CRUD over the request executor, returning plain dicts.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional, Set, Tuple

from exact_sdk.core.errors import ExactError, ExactValidationError
from exact_sdk.core.executor import RequestExecutor
from exact_sdk.odata.expressions import format_literal
from exact_sdk.odata.query import GetResult, ODataQuery
from exact_sdk.odata.responses import get_json_array, get_json_object, get_skip_token


logger = logging.getLogger("exact_sdk.odata")


def key_literal(identifier: Any) -> str:
    """
    Format an entity key for ``Resource(<key>)`` addressing.

    GUID-shaped strings become ``guid'...'``; integers stay bare.

    Examples
    --------
    >>> key_literal("0f8fad5b-d9cb-469f-a165-70867728950e")
    "guid'0f8fad5b-d9cb-469f-a165-70867728950e'"
    >>> key_literal(42)
    '42'
    """
    if isinstance(identifier, str):
        try:
            return format_literal(uuid.UUID(identifier))
        except ValueError:
            return format_literal(identifier)
    return format_literal(identifier)


class EntityEndpoint:
    """
    Client for one entity endpoint, e.g. ``.../api/v1/123/crm/Accounts``.

    Parameters
    ----------
    executor : RequestExecutor
        Executor used for all calls
    endpoint : str
        Full endpoint URL
    key_name : str
        Name of the key property (default: "ID")

    Examples
    --------
    >>> accounts = EntityEndpoint(executor, service_root + "crm/Accounts")
    >>> page = await accounts.query().select("ID", "Name").top(5).get()
    """

    def __init__(self, executor: RequestExecutor, endpoint: str, *, key_name: str = "ID") -> None:
        if not endpoint:
            raise ExactValidationError("Endpoint cannot be empty")
        self.executor = executor
        self.endpoint = endpoint.rstrip("/")
        self.key_name = key_name
        self.linked_fields: Set[str] = set()

    def query(self) -> ODataQuery:
        return ODataQuery(self)

    def register_linked_field(self, field: str) -> None:
        """Mark ``field`` as a nested entity rather than a scalar."""
        self.linked_fields.add(field)

    def _entity_url(self, identifier: Any) -> str:
        return f"{self.endpoint}({key_literal(identifier)})"

    def _key_of(self, entity: Dict[str, Any]) -> Any:
        key = entity.get(self.key_name)
        if key is None or key == "":
            raise ExactValidationError(f"Entity has no value for key '{self.key_name}'")
        return key

    async def get(self, query: str, skip_token: Optional[str] = None) -> GetResult:
        payload = await self.executor.get(self.endpoint, query)
        return GetResult(get_json_array(payload), get_skip_token(payload))

    async def get_entity(self, identifier: Any, query: str = "") -> Dict[str, Any]:
        payload = await self.executor.get(self._entity_url(identifier), query or None)
        return get_json_object(payload)

    async def count(self, query: str = "") -> int:
        payload = await self.executor.clean_get(self.endpoint + "/$count", query or None)
        try:
            return int(payload.strip())
        except (AttributeError, ValueError) as exc:
            raise ExactError(f"Cannot parse count from response: {payload!r}") from exc

    async def create(self, entity: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
        payload = await self.executor.post(self.endpoint, entity)
        created = get_json_object(payload) if payload else {}
        logger.debug("created entity at %s", self.endpoint)
        return bool(created), created

    async def update(self, entity: Dict[str, Any]) -> bool:
        body = {k: v for k, v in entity.items() if k != self.key_name and k not in self.linked_fields}
        await self.executor.put(self._entity_url(self._key_of(entity)), body)
        return True

    async def delete(self, entity: Dict[str, Any]) -> bool:
        await self.executor.delete(self._entity_url(self._key_of(entity)))
        return True
