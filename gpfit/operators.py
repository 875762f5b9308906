"""
gpfit: Fitness evaluation of genetic programming candidates in JAX

Copyright (c) 2024 sdevries0

This work is licensed under the Creative Commons Attribution-NonCommercial-NoDerivs 4.0 International License.
"""

from enum import IntEnum
from typing import Callable, Tuple

import jax.numpy as jnp
from jaxtyping import Array

MIN_VAL = 0.001

class NodeType(IntEnum):
    """Tags of the nodes that can appear in a program. The value of a tag is its row in the operator table."""
    VARIABLE = 0
    CONSTANT = 1

    # Binary operators
    ADD = 2
    ATAN2 = 3
    DIV = 4
    FDIM = 5
    MAX = 6
    MIN = 7
    MUL = 8
    POW = 9
    SUB = 10

    # Unary operators
    ABS = 11
    ACOS = 12
    ACOSH = 13
    ASIN = 14
    ASINH = 15
    ATAN = 16
    ATANH = 17
    CBRT = 18
    COS = 19
    COSH = 20
    CUBE = 21
    EXP = 22
    INV = 23
    LOG = 24
    NEG = 25
    RCBRT = 26
    RSQRT = 27
    SIN = 28
    SINH = 29
    SQ = 30
    SQRT = 31
    TAN = 32
    TANH = 33

BINARY_BEGIN = NodeType.ADD
BINARY_END = NodeType.SUB
UNARY_BEGIN = NodeType.ABS
UNARY_END = NodeType.TANH

# Function containers
def lambda_operator_arity1(f):
    return lambda x, y: f(x)

def lambda_operator_arity2(f):
    return lambda x, y: f(x, y)

def lambda_terminal():
    return lambda x, y: jnp.zeros_like(x)

def protected_div(x: Array, y: Array) -> Array:
    return jnp.where(jnp.abs(y) < MIN_VAL, jnp.ones_like(x), x / y)

def protected_inv(x: Array) -> Array:
    return jnp.where(jnp.abs(x) < MIN_VAL, jnp.zeros_like(x), 1.0 / x)

def protected_log(x: Array) -> Array:
    # log(|x|) for |x| >= MIN_VAL, 0 otherwise
    return jnp.where(jnp.abs(x) < MIN_VAL, jnp.zeros_like(x), jnp.log(jnp.abs(x)))

def fdim(x: Array, y: Array) -> Array:
    return jnp.maximum(x - y, 0.0)

# (tag, name, arity, function). Terminals are placeholders, the tree evaluator handles them itself.
OPERATOR_TABLE: Tuple[Tuple[NodeType, str, int, Callable], ...] = (
    (NodeType.VARIABLE, "variable", 0, lambda_terminal()),
    (NodeType.CONSTANT, "constant", 0, lambda_terminal()),

    (NodeType.ADD, "add", 2, lambda_operator_arity2(jnp.add)),
    (NodeType.ATAN2, "atan2", 2, lambda_operator_arity2(jnp.arctan2)),
    (NodeType.DIV, "div", 2, lambda_operator_arity2(protected_div)),
    (NodeType.FDIM, "fdim", 2, lambda_operator_arity2(fdim)),
    (NodeType.MAX, "max", 2, lambda_operator_arity2(jnp.fmax)),
    (NodeType.MIN, "min", 2, lambda_operator_arity2(jnp.fmin)),
    (NodeType.MUL, "mul", 2, lambda_operator_arity2(jnp.multiply)),
    (NodeType.POW, "pow", 2, lambda_operator_arity2(jnp.power)),
    (NodeType.SUB, "sub", 2, lambda_operator_arity2(jnp.subtract)),

    (NodeType.ABS, "abs", 1, lambda_operator_arity1(jnp.abs)),
    (NodeType.ACOS, "acos", 1, lambda_operator_arity1(jnp.arccos)),
    (NodeType.ACOSH, "acosh", 1, lambda_operator_arity1(jnp.arccosh)),
    (NodeType.ASIN, "asin", 1, lambda_operator_arity1(jnp.arcsin)),
    (NodeType.ASINH, "asinh", 1, lambda_operator_arity1(jnp.arcsinh)),
    (NodeType.ATAN, "atan", 1, lambda_operator_arity1(jnp.arctan)),
    (NodeType.ATANH, "atanh", 1, lambda_operator_arity1(jnp.arctanh)),
    (NodeType.CBRT, "cbrt", 1, lambda_operator_arity1(jnp.cbrt)),
    (NodeType.COS, "cos", 1, lambda_operator_arity1(jnp.cos)),
    (NodeType.COSH, "cosh", 1, lambda_operator_arity1(jnp.cosh)),
    (NodeType.CUBE, "cube", 1, lambda_operator_arity1(lambda x: x * x * x)),
    (NodeType.EXP, "exp", 1, lambda_operator_arity1(jnp.exp)),
    (NodeType.INV, "inv", 1, lambda_operator_arity1(protected_inv)),
    (NodeType.LOG, "log", 1, lambda_operator_arity1(protected_log)),
    (NodeType.NEG, "neg", 1, lambda_operator_arity1(jnp.negative)),
    (NodeType.RCBRT, "rcbrt", 1, lambda_operator_arity1(lambda x: 1.0 / jnp.cbrt(x))),
    (NodeType.RSQRT, "rsqrt", 1, lambda_operator_arity1(lambda x: 1.0 / jnp.sqrt(jnp.abs(x)))),
    (NodeType.SIN, "sin", 1, lambda_operator_arity1(jnp.sin)),
    (NodeType.SINH, "sinh", 1, lambda_operator_arity1(jnp.sinh)),
    (NodeType.SQ, "sq", 1, lambda_operator_arity1(lambda x: x * x)),
    (NodeType.SQRT, "sqrt", 1, lambda_operator_arity1(lambda x: jnp.sqrt(jnp.abs(x)))),
    (NodeType.TAN, "tan", 1, lambda_operator_arity1(jnp.tan)),
    (NodeType.TANH, "tanh", 1, lambda_operator_arity1(jnp.tanh)),
)

assert all(tag == i for i, (tag, *_) in enumerate(OPERATOR_TABLE)), "The operator table should be ordered by node tag"

OPERATOR_FUNCTIONS: Tuple[Callable, ...] = tuple(row[3] for row in OPERATOR_TABLE)
OPERATOR_NAMES: Tuple[str, ...] = tuple(row[1] for row in OPERATOR_TABLE)
ARITIES: Array = jnp.array([row[2] for row in OPERATOR_TABLE], dtype=jnp.int32)

_name_to_node = {name: NodeType(i) for i, name in enumerate(OPERATOR_NAMES)}

def arity(t: int) -> int:
    """
    Returns the number of operands a node consumes.

    Parameters
    ----------
    t : int
        Node tag.

    Returns
    -------
    int
        0 for terminals, 1 for unary and 2 for binary operators.
    """
    if UNARY_BEGIN <= t <= UNARY_END:
        return 1
    if BINARY_BEGIN <= t <= BINARY_END:
        return 2
    return 0

def is_terminal(t: int) -> bool:
    return t == NodeType.VARIABLE or t == NodeType.CONSTANT

def is_nonterminal(t: int) -> bool:
    return not is_terminal(t)

def from_name(name: str) -> NodeType:
    """
    Maps the name of a node to its tag.

    Parameters
    ----------
    name : str
        Name of the node, e.g. "add" or "variable".

    Returns
    -------
    NodeType
        Tag of the node.
    """
    if name not in _name_to_node:
        raise ValueError(f"Unknown node name '{name}', expected one of {list(OPERATOR_NAMES)}")
    return _name_to_node[name]

def apply_operator(t: int, x: float, y: float = 0.0) -> Array:
    """
    Applies the operator with tag `t` outside of a traced program, mainly for inspection.

    Parameters
    ----------
    t : int
        Tag of an operator.
    x : float
        First operand.
    y : float, optional
        Second operand, ignored by unary operators.

    Returns
    -------
    Array
        Result of the operator.
    """
    if is_terminal(t):
        raise ValueError(f"Terminal '{OPERATOR_NAMES[t]}' can not be applied as an operator")
    x = jnp.asarray(x, dtype=jnp.float32)
    y = jnp.asarray(y, dtype=jnp.float32)
    return OPERATOR_FUNCTIONS[t](x, y)
