"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import jax.numpy as jnp
import numpy as np
from jaxtyping import Array

from gpfit.operators import NodeType, arity, from_name, is_terminal, OPERATOR_NAMES

class Node(NamedTuple):
    """
    Element of a program.

    Parameters
    ----------
    t : NodeType
        Tag of the node.
    value : float
        Feature index for a variable, literal for a constant and unused for operators.
    """
    t: NodeType
    value: float = 0.0

    @classmethod
    def variable(cls, fid: int) -> "Node":
        return cls(NodeType.VARIABLE, float(fid))

    @classmethod
    def constant(cls, value: float) -> "Node":
        return cls(NodeType.CONSTANT, float(value))

    @classmethod
    def operator(cls, kind: Union[str, int]) -> "Node":
        t = from_name(kind) if isinstance(kind, str) else NodeType(kind)
        if is_terminal(t):
            raise ValueError(f"'{OPERATOR_NAMES[t]}' is a terminal, not an operator")
        return cls(t, 0.0)

    @property
    def arity(self) -> int:
        return arity(self.t)

    def __repr__(self) -> str:
        if self.t == NodeType.VARIABLE:
            return f"x{int(self.value)}"
        if self.t == NodeType.CONSTANT:
            return f"{self.value}"
        return OPERATOR_NAMES[self.t]

class Program:
    """
    Candidate expression stored as a sequence of nodes in postfix order.
    Terminals push a value on the operand stack, operators pop their operands and push the result.

    Parameters
    ----------
    nodes : Iterable[Node]
        Nodes of the program.

    Attributes
    ----------
    nodes : List[Node]
        Nodes of the program.
    fitness : float or None
        Raw fitness, written by the fitness operations.
    """

    def __init__(self, nodes: Iterable[Node]) -> None:
        self.nodes: List[Node] = list(nodes)
        self.fitness: Optional[float] = None

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"Program({self.nodes}, fitness={self.fitness})"

    def validate(self, n_features: Optional[int] = None) -> None:
        """
        Checks that the program leaves exactly one value on the stack. This is never done during evaluation
        and is meant for debugging the code that generates programs.

        Parameters
        ----------
        n_features : int, optional
            Number of features in the dataset. If given, the feature indices of variables are checked as well.
        """
        depth = 0
        for i, node in enumerate(self.nodes):
            if node.t == NodeType.VARIABLE and n_features is not None and not 0 <= int(node.value) < n_features:
                raise ValueError(f"Node {i} reads feature {int(node.value)}, but there are {n_features} features")
            if depth < node.arity:
                raise ValueError(f"Node {i} ({node!r}) needs {node.arity} operands, but only {depth} are available")
            depth = depth - node.arity + 1
        if depth != 1:
            raise ValueError(f"The program should leave one value on the stack, but leaves {depth}")

    def to_array(self, max_nodes: int) -> np.ndarray:
        """
        Encodes the program as an array of (tag, value) rows, padded with zeros up to `max_nodes`.

        Parameters
        ----------
        max_nodes : int
            Number of rows in the encoded program.

        Returns
        -------
        np.ndarray
            Array of shape (max_nodes, 2).
        """
        if len(self.nodes) > max_nodes:
            raise ValueError(f"The program has {len(self.nodes)} nodes, which is more than max_nodes={max_nodes}")
        array = np.zeros((max_nodes, 2), dtype=np.float32)
        for i, node in enumerate(self.nodes):
            array[i] = (int(node.t), node.value)
        return array

def encode_programs(programs: Sequence[Program], max_nodes: Optional[int] = None) -> Tuple[Array, Array]:
    """
    Encodes a batch of programs into arrays that can be evaluated in parallel.

    Parameters
    ----------
    programs : Sequence[Program]
        Batch of programs.
    max_nodes : int, optional
        Number of rows per encoded program. Defaults to the length of the longest program.

    Returns
    -------
    Tuple[Array, Array]
        Nodes of shape (n_programs, max_nodes, 2) and lengths of shape (n_programs,).
    """
    if max_nodes is None:
        max_nodes = max((len(program) for program in programs), default=1)
    nodes = np.stack([program.to_array(max_nodes) for program in programs]) if len(programs) > 0 else np.zeros((0, max_nodes, 2), dtype=np.float32)
    lengths = np.array([len(program) for program in programs], dtype=np.int32)
    return jnp.asarray(nodes), jnp.asarray(lengths)
