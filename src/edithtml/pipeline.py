"""Element pipelines.

A pipeline keeps an intermediate node list. It starts as the caller's input
and each command replaces it with its own result. A failing command aborts the
pipeline with a PipelineError carrying the command's index.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .commands import create, execute
from .errors import CommandError, PipelineError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .commands import ElementCreatingCommand, ElementProcessingCommand
    from .node import Node

logger = logging.getLogger(__name__)


def _run_commands(commands: Iterable[ElementProcessingCommand], nodes: list[Node], first_index: int) -> list[Node]:
    intermediate = nodes
    for index, command in enumerate(commands, start=first_index):
        logger.debug("Running command %d: %s", index, type(command).__name__)
        try:
            intermediate = execute(command, intermediate)
        except CommandError as exc:
            raise PipelineError(index) from exc
        if not intermediate:
            logger.warning("Command resulted in an empty result set")
    return intermediate


@dataclass(frozen=True, slots=True)
class ElementProcessingPipeline:
    commands: tuple[ElementProcessingCommand, ...]

    def run_on(self, nodes: Iterable[Node]) -> list[Node]:
        return _run_commands(self.commands, list(nodes), 0)


@dataclass(frozen=True, slots=True)
class ElementCreatingPipeline:
    """A creating command (index 0) followed by processing commands (index 1 onwards)."""

    command: ElementCreatingCommand
    processing: tuple[ElementProcessingCommand, ...] = ()

    def run_on(self, nodes: Iterable[Node]) -> list[Node]:
        logger.debug("Running command 0: %s", type(self.command).__name__)
        try:
            created = create(self.command, list(nodes))
        except CommandError as exc:
            raise PipelineError(0) from exc
        if not created:
            logger.warning("Command resulted in an empty result set")
        return _run_commands(self.processing, created, 1)
