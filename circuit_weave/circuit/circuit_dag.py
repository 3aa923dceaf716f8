"""
Dependency graph of the operations in a circuit

Nodes are the positions of the operations in the circuit, an edge `a -> b`
means `a` has to be executed before `b` because both touch a common qubit,
mode or register. Operations without a path between them commute.

The graph is a snapshot, it is not updated when the circuit changes.
Rebuild it with `CircuitDag.from_circuit` or extend it with `add_to_back`.
"""

import logging
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Set, Tuple

import networkx as nx

from circuit_weave.circuit.circuit import Circuit

logger = logging.getLogger(__name__)

Resource = Tuple[str, Hashable]


def _resources(op: Any) -> List[Resource]:
    resources: List[Resource] = [("q", qubit) for qubit in op.involved_qubits()]
    resources.extend(("m", mode) for mode in op.involved_modes())
    resources.extend(("r", name) for name in op.involved_registers())
    return resources


class CircuitDag:
    """
    Directed acyclic graph of the precedence constraints of a circuit

    Built in program order with a pointer to the most recent operation
    touching each resource. Operations acting on all qubits depend on the
    most recent operation of every qubit, later operations on qubits not
    seen so far depend on the most recent all-qubit operation.

    Parameters
    ----------
    number_qubits: Optional[int]
        Qubit bound copied into circuits rebuilt from the graph
    number_modes: Optional[int]
        Mode bound copied into circuits rebuilt from the graph
    """

    def __init__(
        self, number_qubits: Optional[int] = None, number_modes: Optional[int] = None
    ) -> None:
        self._graph = nx.DiGraph()
        self._number_qubits = number_qubits
        self._number_modes = number_modes
        self._first: Dict[Resource, int] = {}
        self._last: Dict[Resource, int] = {}
        self._first_all: Optional[int] = None
        self._last_all: Optional[int] = None

    @classmethod
    def from_circuit(cls, circuit: Circuit) -> "CircuitDag":
        dag = cls(circuit.number_qubits, circuit.number_modes)
        for op in circuit.operations():
            dag.add_to_back(op)
        logger.debug(
            "Built CircuitDag with %d nodes and %d edges",
            dag._graph.number_of_nodes(),
            dag._graph.number_of_edges(),
        )
        return dag

    @property
    def graph(self) -> nx.DiGraph:
        """
        Read only view of the underlying networkx graph
        """
        return self._graph.copy(as_view=True)

    def add_to_back(self, op: Any) -> int:
        """
        Adds an operation after all operations already in the graph

        Returns
        -------
        int
            Node index of the new operation
        """
        node = self._graph.number_of_nodes()
        predecessors: Set[int] = set()
        resources = _resources(op)
        if op.acts_on_all_qubits:
            qubit_touchers = {n for res, n in self._last.items() if res[0] == "q"}
            if qubit_touchers:
                predecessors |= qubit_touchers
            elif self._last_all is not None:
                predecessors.add(self._last_all)
        for resource in resources:
            if resource in self._last:
                predecessors.add(self._last[resource])
            elif resource[0] == "q" and self._last_all is not None:
                predecessors.add(self._last_all)

        self._graph.add_node(node, operation=op)
        self._graph.add_edges_from((pred, node) for pred in predecessors)

        if op.acts_on_all_qubits:
            for resource in list(self._last):
                if resource[0] == "q":
                    self._last[resource] = node
            if self._first_all is None:
                self._first_all = node
            self._last_all = node
        for resource in resources:
            self._first.setdefault(resource, node)
            self._last[resource] = node
        return node

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def nodes(self) -> List[int]:
        return list(range(self._graph.number_of_nodes()))

    def get(self, node: int) -> Any:
        """
        Returns the operation of a node

        Raises
        ------
        KeyError
            If the node does not exist
        """
        if node not in self._graph:
            raise KeyError(f"Node {node} is not in the graph")
        return self._graph.nodes[node]["operation"]

    def edges(self) -> List[Tuple[int, int]]:
        return sorted(self._graph.edges())

    def successors(self, node: int) -> List[int]:
        return sorted(self._graph.successors(node))

    def predecessors(self, node: int) -> List[int]:
        return sorted(self._graph.predecessors(node))

    def _first_involving(self, resource: Resource) -> Optional[int]:
        candidates = [self._first.get(resource)]
        if resource[0] == "q":
            candidates.append(self._first_all)
        candidates = [n for n in candidates if n is not None]
        return min(candidates) if candidates else None

    def _last_involving(self, resource: Resource) -> Optional[int]:
        if resource in self._last:
            return self._last[resource]
        return self._last_all if resource[0] == "q" else None

    def first_operation_involving_qubit(self, qubit: int) -> Optional[int]:
        return self._first_involving(("q", qubit))

    def last_operation_involving_qubit(self, qubit: int) -> Optional[int]:
        return self._last_involving(("q", qubit))

    def first_operation_involving_mode(self, mode: int) -> Optional[int]:
        return self._first_involving(("m", mode))

    def last_operation_involving_mode(self, mode: int) -> Optional[int]:
        return self._last_involving(("m", mode))

    def first_operation_involving_register(self, name: str) -> Optional[int]:
        return self._first_involving(("r", name))

    def last_operation_involving_register(self, name: str) -> Optional[int]:
        return self._last_involving(("r", name))

    def execution_blocked(
        self, already_executed: Iterable[int], to_be_executed: int
    ) -> List[int]:
        """
        Returns the predecessors of `to_be_executed` that have not been
        executed yet, an empty list if the node can be executed
        """
        executed = set(already_executed)
        return [n for n in self.predecessors(to_be_executed) if n not in executed]

    def new_front_layer(
        self,
        already_executed: Iterable[int],
        current_front_layer: Iterable[int],
        to_be_executed: int,
    ) -> List[int]:
        """
        Returns the front layer after executing `to_be_executed`

        Parameters
        ----------
        already_executed: Iterable[int]
            Nodes executed before `to_be_executed`
        current_front_layer: Iterable[int]
            Nodes whose predecessors have all been executed
        to_be_executed: int
            Node of the current front layer that is executed next

        Raises
        ------
        ValueError
            If `to_be_executed` is not in the current front layer
        """
        front_layer = list(current_front_layer)
        if to_be_executed not in front_layer:
            raise ValueError(f"Node {to_be_executed} is not in the current front layer")
        executed = set(already_executed) | {to_be_executed}
        front_layer.remove(to_be_executed)
        for successor in self.successors(to_be_executed):
            if successor not in front_layer and not self.execution_blocked(
                executed, successor
            ):
                front_layer.append(successor)
        return front_layer

    def topological_order(self) -> List[int]:
        return list(nx.lexicographical_topological_sort(self._graph))

    def to_circuit(self, order: Optional[Sequence[int]] = None) -> Circuit:
        """
        Replays the operations as a circuit, in topological order or in
        the given `order`

        Raises
        ------
        ValueError
            If `order` is not a topological order of the graph
        """
        if order is None:
            order = self.topological_order()
        elif not self.is_in_topological_order(order):
            raise ValueError("Order does not respect the dependencies of the graph")
        circuit = Circuit(self._number_qubits, self._number_modes)
        circuit.extend(self.get(node) for node in order)
        return circuit

    def is_in_topological_order(self, sequence: Sequence[int]) -> bool:
        """
        Checks that `sequence` contains every node once and that every
        node comes after all of its predecessors
        """
        sequence = list(sequence)
        if sorted(sequence) != self.nodes():
            return False
        position = {node: index for index, node in enumerate(sequence)}
        return all(position[a] < position[b] for a, b in self._graph.edges())

    def commutes(self, a: int, b: int) -> bool:
        """
        Two nodes commute when neither is reachable from the other
        """
        if a == b:
            return False
        return not (nx.has_path(self._graph, a, b) or nx.has_path(self._graph, b, a))

    def commuting_pairs(self) -> List[Tuple[int, int]]:
        """
        Returns all pairs (a, b), a < b, of nodes that can be reordered
        """
        ancestors = {node: nx.ancestors(self._graph, node) for node in self._graph}
        return [
            (a, b)
            for b in self.nodes()
            for a in range(b)
            if a not in ancestors[b]
        ]

    def parallel_blocks(self) -> List[List[int]]:
        """
        Partitions the nodes into layers, a node is in the first layer
        after the layers of all of its predecessors
        """
        return [sorted(layer) for layer in nx.topological_generations(self._graph)]

    def __repr__(self) -> str:
        return (
            f"CircuitDag(nodes={self._graph.number_of_nodes()}, "
            f"edges={self.edges()})"
        )
