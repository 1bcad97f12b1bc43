"""
exact_sdk.odata.query - Fluent OData query builder
==================================================

Accumulates filter, select, order and paging directives for one entity
endpoint and serializes them in a fixed order:

    $filter, $select, $skip, $expand, $top, $skiptoken, $orderby
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from exact_sdk.core.errors import ExactValidationError
from exact_sdk.odata.expressions import Expression, Operator, comparison, field_name


_MISSING = object()

FieldRef = Union[str, Expression]


@dataclass
class GetResult:
    """One page of records plus the cursor for the next page."""
    results: List[Dict[str, Any]]
    skip_token: Optional[str] = None

    def __iter__(self):
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)


class Controller(Protocol):
    """Entity endpoint a query is bound to."""

    def register_linked_field(self, field: str) -> None: ...

    async def get(self, query: str, skip_token: Optional[str] = None) -> GetResult: ...

    async def get_entity(self, identifier: Any, query: str) -> Dict[str, Any]: ...

    async def count(self, query: str) -> int: ...

    async def create(self, entity: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]: ...

    async def update(self, entity: Dict[str, Any]) -> bool: ...

    async def delete(self, entity: Dict[str, Any]) -> bool: ...


def _predicate(predicate: FieldRef, value: Any, operator: Union[Operator, str]) -> str:
    if value is _MISSING:
        return field_name(predicate)
    return comparison(predicate, value, operator)


def _to_count(directive: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ExactValidationError(
            f"Query '{directive}' expects an integer, got {value!r}"
        ) from exc


def _join_csv(items: Tuple[FieldRef, ...], separator: str = ",") -> str:
    return separator.join(field_name(i) for i in items)


class ODataQuery:
    """
    Fluent query against one entity endpoint.

    Parameters
    ----------
    controller : Controller
        Endpoint that executes the query and owns the linked-field registry

    Examples
    --------
    >>> q = ODataQuery(endpoint).where("Name", "Acme").select("ID", "Name").top(10)
    >>> q.build()
    "$filter=Name eq 'Acme'&$select=ID,Name&$top=10"
    >>> page = await q.get()
    """

    def __init__(self, controller: Controller) -> None:
        if controller is None:
            raise ExactValidationError("Instance of controller cannot be None")
        self._controller = controller
        self._where: str = ""
        self._and: List[str] = []
        self._select: str = ""
        self._expand: str = ""
        self._orderby: str = ""
        self._top: Optional[int] = None
        self._skip: Optional[int] = None
        self._skip_token: Optional[str] = None

    # ---------------- filter ----------------

    def where(
        self,
        predicate: FieldRef,
        value: Any = _MISSING,
        operator: Union[Operator, str] = Operator.EQ,
    ) -> "ODataQuery":
        """
        Set the ``$filter`` clause, replacing any previous one.

        Pass a raw filter string, or a field plus a value for a typed
        comparison: ``where("Name", "Acme")`` gives ``Name eq 'Acme'``.
        """
        if predicate is None or predicate == "":
            raise ExactValidationError("Query 'where' operator cannot be empty")
        self._where = _predicate(predicate, value, operator)
        return self

    def and_(
        self,
        predicate: FieldRef,
        value: Any = _MISSING,
        operator: Union[Operator, str] = Operator.EQ,
    ) -> "ODataQuery":
        """Append a clause ANDed to the filter; requires a prior ``where``."""
        if predicate is None or predicate == "":
            raise ExactValidationError("Query 'and' operator cannot be empty")
        if not self._where:
            raise ExactValidationError(
                "Query 'and' operator cannot be used before 'where' operator is set"
            )
        self._and.append(_predicate(predicate, value, operator))
        return self

    # ---------------- projection / ordering ----------------

    def select(self, *fields: FieldRef) -> "ODataQuery":
        if fields:
            joined = _join_csv(fields)
            self._select = f"{self._select},{joined}" if self._select else joined
        return self

    def order_by(self, *fields: FieldRef) -> "ODataQuery":
        if fields:
            self._append_order(_join_csv(fields))
        return self

    def order_by_descending(self, *fields: FieldRef) -> "ODataQuery":
        """
        Order descending.

        The suffix is placed between the fields joined in one call, so
        ``order_by_descending("A", "B")`` yields ``A desc,B`` and a single
        field carries no suffix.
        """
        if fields:
            self._append_order(_join_csv(fields, " desc,"))
        return self

    def _append_order(self, clause: str) -> None:
        self._orderby = f"{self._orderby},{clause}" if self._orderby else clause

    def expand(self, field: FieldRef) -> "ODataQuery":
        """Expand a linked entity; the field is registered on the endpoint."""
        name = field_name(field)
        self._controller.register_linked_field(name)
        self._expand = name
        return self

    # ---------------- paging ----------------

    def top(self, top: int) -> "ODataQuery":
        self._top = _to_count("top", top)
        return self

    def skip(self, skip: int) -> "ODataQuery":
        self._skip = _to_count("skip", skip)
        return self

    def skip_token(self, token: Optional[str]) -> "ODataQuery":
        """Continue from a cursor returned with a previous page."""
        if token:
            self._skip_token = token
        return self

    # ---------------- serialization ----------------

    def build(self, select_is_mandatory: bool = False) -> str:
        """
        Serialize the query string (without leading ``?``).

        Raises
        ------
        ExactValidationError
            If ``select_is_mandatory`` and no field was selected
        """
        parts: List[str] = []

        if self._where:
            parts.append("$filter=" + " and ".join([self._where] + self._and))

        if self._select:
            parts.append("$select=" + self._select)
        elif select_is_mandatory:
            raise ExactValidationError("You have to specify which fields you want to select")

        if self._skip is not None:
            parts.append(f"$skip={self._skip}")
        if self._expand:
            parts.append("$expand=" + self._expand)
        if self._top is not None:
            parts.append(f"$top={self._top}")
        if self._skip_token:
            parts.append("$skiptoken=" + self._skip_token)
        if self._orderby:
            parts.append("$orderby=" + self._orderby)

        return "&".join(parts)

    def __str__(self) -> str:
        return self.build()

    # ---------------- execution ----------------

    async def count(self) -> int:
        """Number of entities matching the filter."""
        return await self._controller.count(self.build(False))

    async def get(self, skip_token: Optional[str] = None) -> GetResult:
        """One page of records; ``select`` is mandatory."""
        self.skip_token(skip_token)
        return await self._controller.get(self.build(True), skip_token)

    async def get_all(self, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Follow skip tokens until the last page, or ``max_pages`` pages.
        """
        out: List[Dict[str, Any]] = []
        seen = set()
        token: Optional[str] = None
        pages = 0
        while True:
            page = await self.get(token)
            out.extend(page.results)
            pages += 1
            token = page.skip_token
            if not token or token in seen:
                return out
            if max_pages is not None and pages >= int(max_pages):
                return out
            seen.add(token)

    async def get_entity(self, identifier: Any) -> Dict[str, Any]:
        if identifier is None or identifier == "":
            raise ExactValidationError("Get entity: Identifier cannot be empty")
        return await self._controller.get_entity(identifier, self.build(False))

    async def insert(self, entity: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
        if entity is None:
            raise ExactValidationError("Insert entity: Entity cannot be None")
        return await self._controller.create(entity)

    async def update(self, entity: Dict[str, Any]) -> bool:
        if entity is None:
            raise ExactValidationError("Update entity: Entity cannot be None")
        return await self._controller.update(entity)

    async def delete(self, entity: Dict[str, Any]) -> bool:
        if entity is None:
            raise ExactValidationError("Delete entity: Entity cannot be None")
        return await self._controller.delete(entity)
