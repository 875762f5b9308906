try:
    from importlib.metadata import version
    __version__ = version("gpfit")
except ImportError:
    __version__ = "unknown"

from gpfit.dataset import Dataset
from gpfit.fitness import (
    FitnessEvaluator,
    compute_metric,
    find_batched_fitness,
    log_loss,
    mean_absolute_error,
    mean_square_error,
    root_mean_square_error,
    weighted_pearson,
    weighted_spearman,
)
from gpfit.operators import NodeType
from gpfit.program import Node, Program
from gpfit.tree_evaluator import evaluate, execute
