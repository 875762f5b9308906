from gpfit.fitness_functions.base_fitness_function import BaseFitnessFunction
from gpfit.fitness_functions.correlation_fitness_function import (
    WeightedPearsonFitnessFunction,
    WeightedSpearmanFitnessFunction,
    dense_rank,
)
from gpfit.fitness_functions.error_fitness_function import (
    MeanAbsoluteErrorFitnessFunction,
    MeanSquareErrorFitnessFunction,
    RootMeanSquareErrorFitnessFunction,
)
from gpfit.fitness_functions.log_loss_fitness_function import LogLossFitnessFunction, log_sigmoid
