"""Impact-set resolution: which manifests transitively reference a changed one."""

from __future__ import annotations

import posixpath
from typing import List, Optional, Set

from .graph import DependencyGraph
from .models import ImpactReport


def resolve_impact_set(graph: DependencyGraph, changed: str) -> List[str]:
    """Return *changed* followed by every manifest that depends on it.

    Walks the graph against edge direction depth-first ("who references me,
    and who references them"), in pre-order with referrers taken in discovery
    order. A manifest is never visited twice, which keeps the walk finite on
    circular references. Paths unknown to the graph are leaves.
    """
    result: List[str] = []
    seen: Set[str] = set()
    stack: List[str] = [changed]

    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        result.append(current)
        for referrer in reversed(graph.referrers(current)):
            if referrer not in seen:
                stack.append(referrer)
    return result


class ImpactResolver:
    """Resolve impact sets and render them for humans."""

    def __init__(self, graph: DependencyGraph, root_dir: Optional[str] = None):
        self.graph = graph
        self.root_dir = root_dir

    def impact_set(self, changed: str) -> List[str]:
        return resolve_impact_set(self.graph, changed)

    def report(self, changed: str) -> ImpactReport:
        impacted = self.impact_set(changed)
        return ImpactReport(
            root=self.label(changed),
            impacted=[self.label(p) for p in impacted[1:]],
            ascii_graph=self.render_ascii(changed),
        )

    def render_ascii(self, changed: str) -> str:
        """Indented tree of referrers below *changed*.

        A manifest already printed higher up is shown once more with a ``(seen)``
        marker and not expanded again.
        """
        lines: List[str] = [self.label(changed)]
        seen = {changed}
        stack = [(r, 1) for r in reversed(self.graph.referrers(changed))]

        while stack:
            current, depth = stack.pop()
            prefix = "  " * depth
            if current in seen:
                lines.append(f"{prefix}<- {self.label(current)} (seen)")
                continue
            seen.add(current)
            lines.append(f"{prefix}<- {self.label(current)}")
            for referrer in reversed(self.graph.referrers(current)):
                stack.append((referrer, depth + 1))
        return "\n".join(lines)

    def label(self, path: str) -> str:
        if self.root_dir:
            rel = posixpath.relpath(path, self.root_dir)
            if not rel.startswith(".."):
                return rel
        return path
