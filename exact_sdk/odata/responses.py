"""
exact_sdk.odata.responses - OData v2 payload helpers
====================================================

Strip the ``d`` / ``d.results`` envelope from raw payloads and extract the
pagination cursor.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional


_SKIP_TOKEN_RE = re.compile(r"\$skiptoken=([^&#]*)")


def _root(payload: str) -> Any:
    data = json.loads(payload)
    if not isinstance(data, dict):
        return None
    return data.get("d")


def get_json_array(payload: str) -> List[Dict[str, Any]]:
    """
    Records of a list response: ``d`` when it is a list, else ``d.results``.
    """
    root = _root(payload)
    if isinstance(root, list):
        return root
    if isinstance(root, dict):
        return root.get("results") or []
    return []


def get_json_object(payload: str) -> Dict[str, Any]:
    """The single entity wrapped in ``d``."""
    root = _root(payload)
    if isinstance(root, dict):
        return root
    return {}


def get_skip_token(payload: str) -> Optional[str]:
    """
    Continuation cursor taken from ``d.__next``.

    Returns
    -------
    str or None
        The raw ``$skiptoken`` value, or None on the last page
    """
    root = _root(payload)
    if not isinstance(root, dict):
        return None
    next_link = root.get("__next")
    if not next_link:
        return None
    match = _SKIP_TOKEN_RE.search(str(next_link))
    return match.group(1) if match else None
