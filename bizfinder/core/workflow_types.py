from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..providers.base import SearchMeta


@dataclass
class WorkflowContext:
    search_id: str
    request: Dict[str, Any]

    plan: Dict[str, Any] = field(default_factory=dict)
    places: list = field(default_factory=list)
    details: list = field(default_factory=list)

    meta: SearchMeta = field(default_factory=SearchMeta)
    response: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
