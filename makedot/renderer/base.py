"""Abstract base renderer."""

from __future__ import annotations

import abc
from typing import TextIO

from makedot.models import Graph


class RenderError(Exception):
    """The output stream rejected the rendered document."""


class BaseRenderer(abc.ABC):
    """Base class for graph renderers."""

    @abc.abstractmethod
    def render_to_string(self, graph: Graph) -> str:
        """Serialize a graph into a complete document."""

    def render(self, graph: Graph, stream: TextIO) -> None:
        """Write the whole document to ``stream`` in one piece."""
        document = self.render_to_string(graph)
        try:
            stream.write(document)
            stream.flush()
        except (OSError, ValueError) as e:
            raise RenderError(f"failed to write graph: {e}") from e
