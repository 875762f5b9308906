"""
# Scoring a batch of random programs

In this example, gpfit is used to score a batch of randomly generated programs on a noisy regression task with every available metric.
The programs are generated as postfix node sequences, which is the format the tree evaluator expects.
"""

# Specify the cores to use for XLA
import os
os.environ["XLA_FLAGS"] = '--xla_force_host_platform_device_count=4'

import jax.numpy as jnp
import jax.random as jr
import numpy as np

from gpfit import Dataset, FitnessEvaluator, Node, Program
from gpfit.operators import BINARY_BEGIN, BINARY_END, UNARY_BEGIN, UNARY_END

"""
First the data is generated. The features are stored in column-major layout, so every row of X holds the samples of one feature.
"""

def get_data(key, n_samples=200):
    x_key, noise_key, weight_key = jr.split(key, 3)
    X = jr.uniform(x_key, shape=(2, n_samples), minval=-2, maxval=2)
    y = X[0] * X[0] + jnp.sin(3 * X[1]) + 0.1 * jr.normal(noise_key, shape=(n_samples,))
    w = jr.uniform(weight_key, shape=(n_samples,), minval=0.5, maxval=1.5)
    return Dataset(y, X, w)

"""
The programs are sampled by growing a postfix sequence: a terminal pushes a value and an operator needs enough values on the stack.
"""

def sample_program(rng, n_features, max_nodes=15):
    nodes = []
    depth = 0
    while len(nodes) < max_nodes - depth:
        choice = rng.uniform()
        if depth == 0 or (choice < 0.4 and len(nodes) < max_nodes - depth - 1):
            nodes.append(Node.variable(rng.integers(n_features)) if rng.uniform() < 0.7 else Node.constant(rng.normal()))
            depth += 1
        elif depth >= 2 and choice < 0.75:
            nodes.append(Node.operator(int(rng.integers(BINARY_BEGIN, BINARY_END + 1))))
            depth -= 1
        else:
            nodes.append(Node.operator(int(rng.integers(UNARY_BEGIN, UNARY_END + 1))))
        if depth == 1 and rng.uniform() < 0.2:
            break

    # Reduce the remaining values to a single one
    while depth > 1:
        nodes.append(Node.operator("add"))
        depth -= 1
    return Program(nodes)

if __name__ == "__main__":
    key = jr.PRNGKey(0)
    data = get_data(key)
    rng = np.random.default_rng(0)

    population_size = 100
    programs = [sample_program(rng, data.n_features) for _ in range(population_size)]

    for metric in ["pearson", "spearman", "mae", "mse", "rmse"]:
        evaluator = FitnessEvaluator(metric=metric, max_nodes=32, verbose=True)
        fitness = evaluator(programs, data)

    best = programs[int(jnp.nanargmin(fitness))]
    print(f"Best program: {best.nodes}, rmse = {best.fitness:.4f}")
