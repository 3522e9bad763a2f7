"""
Graph partition tracking.

``GraphState`` owns the routable vertex graph of a generation pass as a set
of vertex-disjoint partitions. Each carved path is removed from the
partition it runs through and the remainder is re-split into connected
components, so later features can only route over vertices no earlier
feature has consumed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

import structlog

from .vertex_graph import (
    VertexGraph,
    deep_copy_graph,
    determine_centroid,
    find_connected_subgraphs,
    find_largest_graph,
    remove_vertices,
    validate_graph,
)

logger = structlog.get_logger()


@dataclass
class GraphPartition:
    """A connected, independently owned slice of the live vertex graph."""
    id: str
    type: str
    description: str
    graph: VertexGraph
    created_at: str
    parent_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def vertex_count(self) -> int:
        return self.graph.valid_vertex_count

    @property
    def edge_count(self) -> int:
        return len(self.graph.edges)

    def contains(self, vertex_id: int) -> bool:
        return self.graph.has_vertex(vertex_id)


@dataclass(frozen=True)
class OperationRecord:
    """One entry of the append-only operation log."""
    type: str
    timestamp: str
    details: Dict[str, Any]
    partition_count: int
    total_vertices: int


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GraphState:
    """
    Partition tracker for the routable vertex graph.

    Lifecycle: uninitialized, then ``initialize`` creates a single partition
    holding a deep copy of the base graph, then every ``split_by_path``
    replaces one partition with the connected components left after
    removing the path.
    """

    def __init__(self):
        self._base_graph: Optional[VertexGraph] = None
        self._partitions: List[GraphPartition] = []
        self._operations: List[OperationRecord] = []
        self._consumed: Set[int] = set()
        self._counter = 0
        self.settings: Dict[str, Any] = {}
        self.highlighted: Optional[GraphPartition] = None

    @property
    def is_initialized(self) -> bool:
        return self._base_graph is not None

    @property
    def base_graph(self) -> Optional[VertexGraph]:
        """Copy of the graph the state was initialized with."""
        if self._base_graph is None:
            return None
        return deep_copy_graph(self._base_graph)

    @property
    def partitions(self) -> List[GraphPartition]:
        return list(self._partitions)

    @property
    def consumed_vertices(self) -> Set[int]:
        """Every vertex removed by a split since initialization."""
        return set(self._consumed)

    @property
    def operation_history(self) -> Tuple[OperationRecord, ...]:
        return tuple(self._operations)

    def initialize(self, base_graph: VertexGraph, settings: Optional[Dict[str, Any]] = None) -> GraphPartition:
        """
        Reset all state and start over with one partition of the full graph.

        Args:
            base_graph: Routable vertex graph of the pass; it is copied, never
                mutated
            settings: Optional settings recorded with the state

        Returns:
            The initial partition
        """
        self.reset()
        self.settings = dict(settings or {})
        self._base_graph = deep_copy_graph(base_graph)

        initial = self._create_partition(deep_copy_graph(base_graph), "initial",
                                         "Complete original graph")
        self._partitions = [initial]

        self._record("initialize", {
            "description": "Initialized graph state with original graph",
            "partition_count": 1,
            "vertex_count": initial.vertex_count,
        })
        logger.info("Graph state initialized", partition_id=initial.id,
                    vertices=initial.vertex_count, edges=initial.edge_count)
        return initial

    def split_by_path(self, partition_id: str, path: Iterable[int],
                      feature_type: str = "split", feature_index: int = 0,
                      description: Optional[str] = None) -> List[GraphPartition]:
        """
        Remove a vertex path from a partition and re-split the remainder.

        The original partition is replaced by one partition per connected
        component of what is left. Path vertices outside the partition are
        ignored.

        Args:
            partition_id: Partition the path runs through
            path: Vertex ids to consume
            feature_type: Kind of feature causing the split (used in new ids)
            feature_index: Index of that feature
            description: Optional human readable description

        Returns:
            The new partitions, or an empty list if the partition is unknown
        """
        path = list(path)
        index = next((i for i, p in enumerate(self._partitions) if p.id == partition_id), None)
        if index is None:
            logger.warning("Partition not found for splitting", partition_id=partition_id)
            return []

        target = self._partitions[index]
        consumed = [v for v in path if target.contains(v)]
        remove_vertices(target.graph, path)
        components = find_connected_subgraphs(target.graph)

        del self._partitions[index]
        if self.highlighted is target:
            self.highlighted = None

        label = description or "Split"
        new_partitions = [
            self._create_partition(
                component,
                f"{feature_type}-{feature_index}-{i}",
                f"{label} {i} from {target.description}",
                parent_id=partition_id,
                metadata={
                    "split_feature_type": feature_type,
                    "split_feature_index": feature_index,
                    "split_path": list(path),
                    "split_index": i,
                },
            )
            for i, component in enumerate(components)
        ]
        self._partitions.extend(new_partitions)
        self._consumed.update(consumed)

        self._record("graph_split", {
            "split_type": feature_type,
            "feature_index": feature_index,
            "parent_partition": partition_id,
            "path_length": len(path),
            "resulting_partitions": len(new_partitions),
            "description": description or f"Split graph into {len(new_partitions)} partitions",
        })
        logger.info("Split partition by path", partition_id=partition_id,
                    path_length=len(path), new_partitions=len(new_partitions))
        return new_partitions

    def get_largest_partition(self) -> Optional[GraphPartition]:
        """Partition with the most valid vertices, or ``None`` if there is none."""
        if not self._partitions:
            return None
        return self._partitions[find_largest_graph([p.graph for p in self._partitions])]

    def get_partition(self, partition_id: str) -> Optional[GraphPartition]:
        return next((p for p in self._partitions if p.id == partition_id), None)

    def get_partitions_by(self, predicate: Callable[[GraphPartition], bool]) -> List[GraphPartition]:
        return [p for p in self._partitions if predicate(p)]

    def find_partition_containing(self, vertex_id: int) -> Optional[GraphPartition]:
        """The partition holding a vertex; consumed vertices belong to none."""
        return next((p for p in self._partitions if p.contains(vertex_id)), None)

    def partition_summaries(self) -> List[Dict[str, Any]]:
        """Id, size, centroid and validation stats of every partition."""
        summaries = []
        for partition in self._partitions:
            centroid = determine_centroid(partition.graph)
            summaries.append({
                "id": partition.id,
                "type": partition.type,
                "description": partition.description,
                "parent_id": partition.parent_id,
                "vertex_count": partition.vertex_count,
                "edge_count": partition.edge_count,
                "centroid": centroid.point if centroid else None,
                "stats": validate_graph(partition.graph).stats,
            })
        return summaries

    def get_statistics(self) -> Dict[str, Any]:
        sizes = [p.vertex_count for p in self._partitions]
        total = sum(sizes)
        return {
            "total_partitions": len(sizes),
            "total_vertices": total,
            "largest_partition": max(sizes, default=0),
            "smallest_partition": min(sizes, default=0),
            "average_partition_size": total / len(sizes) if sizes else 0,
            "consumed_vertices": len(self._consumed),
            "operations_count": len(self._operations),
            "has_highlight": self.highlighted is not None,
            "highlighted_partition_id": self.highlighted.id if self.highlighted else None,
        }

    def highlight_partition(self, partition_id: str) -> Optional[GraphPartition]:
        """Mark a partition for display. Has no effect on routing."""
        partition = self.get_partition(partition_id)
        if partition is None:
            logger.warning("Partition not found for highlighting", partition_id=partition_id)
            return None
        self.highlighted = partition
        return partition

    def clear_highlight(self) -> None:
        self.highlighted = None

    def reset(self) -> None:
        self._base_graph = None
        self._partitions = []
        self._operations = []
        self._consumed = set()
        self._counter = 0
        self.settings = {}
        self.highlighted = None

    def _create_partition(self, graph: VertexGraph, partition_type: str, description: str,
                          parent_id: Optional[str] = None,
                          metadata: Optional[Dict[str, Any]] = None) -> GraphPartition:
        partition = GraphPartition(
            id=f"{partition_type}-{self._counter}",
            type=partition_type,
            description=description,
            graph=graph,
            created_at=_now(),
            parent_id=parent_id,
            metadata=dict(metadata or {}),
        )
        self._counter += 1
        return partition

    def _record(self, operation_type: str, details: Dict[str, Any]) -> None:
        self._operations.append(OperationRecord(
            type=operation_type,
            timestamp=_now(),
            details=details,
            partition_count=len(self._partitions),
            total_vertices=sum(p.vertex_count for p in self._partitions),
        ))
