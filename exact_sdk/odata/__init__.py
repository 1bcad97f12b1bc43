"""
exact_sdk.odata - OData query composition
=========================================

This module provides query composition and endpoint access:

- ODataQuery: fluent $filter/$select/$orderby/paging builder
- Field / MethodCall / Constant: typed expression nodes
- EntityEndpoint: endpoint-scoped CRUD returning dicts
- Response helpers for the ``d`` envelope and skip tokens

"""

from exact_sdk.odata.expressions import (
    Constant,
    Field,
    MethodCall,
    Operator,
    escape_odata_literal,
    format_literal,
    translate,
)
from exact_sdk.odata.query import GetResult, ODataQuery
from exact_sdk.odata.endpoint import EntityEndpoint
from exact_sdk.odata.responses import get_json_array, get_json_object, get_skip_token

__all__ = [
    "Constant",
    "Field",
    "MethodCall",
    "Operator",
    "escape_odata_literal",
    "format_literal",
    "translate",
    "GetResult",
    "ODataQuery",
    "EntityEndpoint",
    "get_json_array",
    "get_json_object",
    "get_skip_token",
]
