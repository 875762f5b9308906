"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

import jax
import jax.numpy as jnp
from jaxtyping import Array
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

from gpfit.dataset import Dataset
from gpfit.operators import ARITIES, OPERATOR_FUNCTIONS, NodeType
from gpfit.program import Program, encode_programs

# Function containers, every node function receives (first operand, second operand, node value, sample)
def lambda_variable():
    return lambda x, y, value, sample: sample[value.astype(int)]

def lambda_constant():
    return lambda x, y, value, sample: value

def lambda_operator(f):
    return lambda x, y, value, sample: f(x, y).astype(sample.dtype)

def build_node_function_list() -> List[Callable]:
    node_function_list = [lambda_variable(), lambda_constant()]
    for t in range(NodeType.CONSTANT + 1, len(OPERATOR_FUNCTIONS)):
        node_function_list.append(lambda_operator(OPERATOR_FUNCTIONS[t]))
    return node_function_list

NODE_FUNCTION_LIST = build_node_function_list()

def evaluate_row_from_program(i: int, carry: Tuple[Array, Array], nodes: Array, sample: Array) -> Tuple[Array, Array]:
    """
    Evaluates a single node of a program and updates the operand stack.

    Parameters
    ----------
    i : int
        Index of the node.
    carry : Tuple[Array, Array]
        Operand stack and stack pointer (number of values on the stack).
    nodes : Array
        Encoded program of shape (max_nodes, 2).
    sample : Array
        Features of one sample.

    Returns
    -------
    Tuple[Array, Array]
        Updated operand stack and stack pointer.
    """
    stack, pointer = carry
    t = nodes[i, 0].astype(int)
    value = nodes[i, 1].astype(sample.dtype)

    n_operands = ARITIES[t]
    position = pointer - n_operands  # Operands are popped from here and the result is pushed here

    x = stack[jnp.maximum(position, 0)]  # First operand
    y = stack[jnp.maximum(pointer - 1, 0)]  # Second operand, equal to the first for unary operators
    result = jax.lax.switch(t, NODE_FUNCTION_LIST, x, y, value, sample)

    stack = stack.at[position].set(result)
    return stack, position + 1

def evaluate_nodes(nodes: Array, length: Array, sample: Array) -> Array:
    """
    Evaluates an encoded program on the features of one sample.

    Parameters
    ----------
    nodes : Array
        Encoded program of shape (max_nodes, 2).
    length : Array
        Number of nodes in the program. Rows after `length` are ignored.
    sample : Array
        Features of one sample, shape (n_features,).

    Returns
    -------
    Array
        Prediction of the program.
    """
    sample = jnp.atleast_1d(sample).astype(jnp.result_type(float))  # Integer features are evaluated in floating point
    stack = jnp.zeros(nodes.shape[0], dtype=sample.dtype)
    pointer = jnp.array(0, dtype=jnp.int32)
    stack, _ = jax.lax.fori_loop(0, length, partial(evaluate_row_from_program, nodes=nodes, sample=sample), (stack, pointer))
    return stack[0]

def predict(nodes: Array, lengths: Array, X: Array) -> Array:
    """
    Evaluates every encoded program on every sample.

    Parameters
    ----------
    nodes : Array
        Encoded programs of shape (n_programs, max_nodes, 2).
    lengths : Array
        Number of nodes of each program.
    X : Array
        Features in column-major layout, shape (n_features, n_samples).

    Returns
    -------
    Array
        Predictions of shape (n_programs, n_samples).
    """
    evaluate_samples = jax.vmap(evaluate_nodes, in_axes=[None, None, 1])
    return jax.vmap(evaluate_samples, in_axes=[0, 0, None])(nodes, lengths, X)

jit_predict = jax.jit(predict)

def evaluate(program: Program, dataset: Dataset, sample_index: int) -> float:
    """
    Evaluates a program on one sample of a dataset.

    Parameters
    ----------
    program : Program
        Program to be evaluated.
    dataset : Dataset
        Dataset with features in column-major layout.
    sample_index : int
        Index of the sample.

    Returns
    -------
    float
        Prediction of the program.
    """
    nodes, lengths = encode_programs([program])
    return float(evaluate_nodes(nodes[0], lengths[0], dataset.X[:, sample_index]))

def execute(programs: Sequence[Program], dataset: Dataset, max_nodes: Optional[int] = None) -> Array:
    """
    Evaluates a batch of programs on all samples of a dataset.

    Parameters
    ----------
    programs : Sequence[Program]
        Batch of programs.
    dataset : Dataset
        Dataset with features in column-major layout.
    max_nodes : int, optional
        Capacity of the encoded programs. Defaults to the length of the longest program.

    Returns
    -------
    Array
        Predictions of shape (n_programs, n_samples).
    """
    nodes, lengths = encode_programs(programs, max_nodes)
    return jit_predict(nodes, lengths, dataset.X)
