from __future__ import annotations

import logging
from typing import List

from .workflow_types import WorkflowContext

logger = logging.getLogger(__name__)


class WorkflowRunner:
    def __init__(self, nodes: List):
        self.nodes = nodes

    async def run(self, ctx: WorkflowContext) -> WorkflowContext:
        for node in self.nodes:
            logger.debug("[%s] running %s", ctx.search_id, node.name)
            ctx = await node.run(ctx)
        return ctx
