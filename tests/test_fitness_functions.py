import numpy as np
import jax.numpy as jnp
import pytest

from gpfit.fitness_functions import (
    LogLossFitnessFunction,
    MeanAbsoluteErrorFitnessFunction,
    MeanSquareErrorFitnessFunction,
    RootMeanSquareErrorFitnessFunction,
    WeightedPearsonFitnessFunction,
    WeightedSpearmanFitnessFunction,
    dense_rank,
    log_sigmoid,
)

pearson = WeightedPearsonFitnessFunction()
spearman = WeightedSpearmanFitnessFunction()
mae = MeanAbsoluteErrorFitnessFunction()
mse = MeanSquareErrorFitnessFunction()
rmse = RootMeanSquareErrorFitnessFunction()
log_loss = LogLossFitnessFunction()


@pytest.fixture
def rng():
    return np.random.default_rng(0)


def as_arrays(y, y_pred, w=None):
    y = jnp.asarray(y, dtype=jnp.float32)
    y_pred = jnp.atleast_2d(jnp.asarray(y_pred, dtype=jnp.float32))
    w = jnp.ones_like(y) if w is None else jnp.asarray(w, dtype=jnp.float32)
    return y, y_pred, w


def test_exact_predictions():
    y, y_pred, w = as_arrays([0.0, 1.0, 1.0], [[0.0, 1.0, 1.0]], [1.0, 1.0, 1.0])
    np.testing.assert_allclose(np.asarray(pearson(y, y_pred, w)), [1.0], rtol=1e-6)
    assert float(mae(y, y_pred, w)[0]) == 0.0
    assert float(mse(y, y_pred, w)[0]) == 0.0
    assert float(rmse(y, y_pred, w)[0]) == 0.0


def test_exact_predictions_with_normalized_weights(rng):
    y = rng.normal(size=40)
    w = rng.uniform(size=40)
    w = w / w.sum()
    y, y_pred, w = as_arrays(y, [y], w)
    np.testing.assert_allclose(np.asarray(pearson(y, y_pred, w)), [1.0], rtol=1e-5)
    np.testing.assert_allclose(np.asarray(mae(y, y_pred, w)), [0.0], atol=1e-7)
    np.testing.assert_allclose(np.asarray(rmse(y, y_pred, w)), [0.0], atol=1e-7)
    np.testing.assert_allclose(np.asarray(mse(y, y_pred, w)), [0.0], atol=1e-7)


def test_perfect_inverse():
    y, y_pred, w = as_arrays([1.0, 2.0, 3.0], [[3.0, 2.0, 1.0]])
    np.testing.assert_allclose(np.asarray(pearson(y, y_pred, w)), [-1.0], rtol=1e-6)
    np.testing.assert_allclose(np.asarray(spearman(y, y_pred, w)), [-1.0], rtol=1e-6)


def test_pearson_matches_numpy(rng):
    y = rng.normal(size=30)
    y_pred = np.stack([y + rng.normal(size=30), rng.normal(size=30), -2.0 * y])
    fitness = np.asarray(pearson(*as_arrays(y, y_pred)))
    expected = [np.corrcoef(row, y)[0, 1] for row in y_pred]
    np.testing.assert_allclose(fitness, expected, rtol=1e-4, atol=1e-5)


def test_weighted_pearson_matches_reference(rng):
    y = rng.normal(size=25)
    x = 0.5 * y + rng.normal(size=25)
    w = rng.uniform(0.1, 2.0, size=25)

    y_mu, x_mu = np.average(y, weights=w), np.average(x, weights=w)
    cov = np.sum(w * (x - x_mu) * (y - y_mu))
    expected = cov / np.sqrt(np.sum(w * (x - x_mu) ** 2) * np.sum(w * (y - y_mu) ** 2))

    np.testing.assert_allclose(np.asarray(pearson(*as_arrays(y, [x], w))), [expected], rtol=1e-4)


def test_pearson_with_constant_predictions_is_not_finite():
    fitness = pearson(*as_arrays([1.0, 2.0, 3.0], [[5.0, 5.0, 5.0]]))
    assert not np.isfinite(float(fitness[0]))


@pytest.mark.parametrize("x, expected", [
    ([10.0, 20.0, 20.0, 5.0], [2.0, 3.0, 3.0, 1.0]),
    ([3.0, 3.0, 3.0], [1.0, 1.0, 1.0]),
    ([-1.0, 4.0, 0.5, 4.0, -1.0, 7.0], [1.0, 3.0, 2.0, 3.0, 1.0, 4.0]),
])
def test_dense_rank(x, expected):
    np.testing.assert_array_equal(np.asarray(dense_rank(jnp.asarray(x))), expected)


def test_dense_rank_is_idempotent():
    ranks = jnp.asarray([1.0, 2.0, 2.0, 3.0, 1.0, 4.0])
    np.testing.assert_array_equal(np.asarray(dense_rank(ranks)), np.asarray(ranks))
    np.testing.assert_array_equal(np.asarray(dense_rank(dense_rank(ranks))), np.asarray(ranks))


@pytest.mark.parametrize("transform", [
    lambda x: 3.0 * x + 7.0,
    np.exp,
    lambda x: x ** 3,
    np.arctan,
])
def test_spearman_is_invariant_to_monotonic_transforms(rng, transform):
    y = rng.normal(size=50)
    x = y + rng.normal(size=50)
    w = rng.uniform(0.5, 1.5, size=50)
    original = float(spearman(*as_arrays(y, [x], w))[0])
    transformed = float(spearman(*as_arrays(y, [transform(x)], w))[0])
    assert transformed == pytest.approx(original, rel=1e-5)


def test_spearman_uses_dense_ranks():
    # With dense ranks, y = [1, 1, 2] ranks as [1, 1, 2] and the predictions [0, 5, 10] as [1, 2, 3]
    y, y_pred, w = as_arrays([1.0, 1.0, 2.0], [[0.0, 5.0, 10.0]])
    expected = np.corrcoef([1.0, 1.0, 2.0], [1.0, 2.0, 3.0])[0, 1]
    np.testing.assert_allclose(np.asarray(spearman(y, y_pred, w)), [expected], rtol=1e-5)


def test_errors_match_reference(rng):
    y = rng.normal(size=20)
    y_pred = rng.normal(size=(3, 20))
    w = rng.uniform(size=20)
    arrays = as_arrays(y, y_pred, w)

    expected_mae = [np.average(np.abs(row - y), weights=w) for row in y_pred]
    expected_mse = [np.average((row - y) ** 2, weights=w) for row in y_pred]

    np.testing.assert_allclose(np.asarray(mae(*arrays)), expected_mae, rtol=1e-5)
    np.testing.assert_allclose(np.asarray(mse(*arrays)), expected_mse, rtol=1e-5)
    np.testing.assert_allclose(np.asarray(rmse(*arrays)), np.sqrt(expected_mse), rtol=1e-5)


def test_errors_are_non_negative_and_rmse_is_root_of_mse(rng):
    y = rng.normal(scale=10.0, size=15)
    y_pred = rng.normal(scale=10.0, size=(5, 15))
    arrays = as_arrays(y, y_pred, rng.uniform(size=15))

    assert np.all(np.asarray(mae(*arrays)) >= 0)
    assert np.all(np.asarray(mse(*arrays)) >= 0)
    np.testing.assert_allclose(np.asarray(rmse(*arrays)), np.sqrt(np.asarray(mse(*arrays))), rtol=1e-6)


def test_log_loss_at_zero_logit():
    y, y_pred, w = as_arrays(np.ones(4), np.zeros((1, 4)))
    np.testing.assert_allclose(np.asarray(log_loss(y, y_pred, w)), [np.log(2.0)], rtol=1e-6)


@pytest.mark.parametrize("yp", [-40.0, -20.0, 0.0, 40.0])
@pytest.mark.parametrize("label", [0.0, 1.0])
def test_log_loss_regions(yp, label):
    fitness = float(log_loss(*as_arrays([label], [[yp]]))[0])
    # Reference in double precision: (1 - y) * yp + log(1 + exp(-yp))
    expected = (1.0 - label) * yp + np.logaddexp(0.0, -yp)
    assert np.isfinite(fitness)
    np.testing.assert_allclose(fitness, expected, rtol=1e-6, atol=1e-6)


@pytest.mark.parametrize("x", [-1000.0, -40.0, -33.3, -25.0, -18.0, -5.0, 0.0, 5.0, 37.0, 50.0, 1000.0])
def test_log_sigmoid_is_finite_and_accurate(x):
    result = float(log_sigmoid(jnp.asarray(x, dtype=jnp.float32)))
    assert np.isfinite(result)
    np.testing.assert_allclose(result, -np.logaddexp(0.0, -np.float32(x)), rtol=1e-6, atol=1e-6)


def test_weighted_log_loss(rng):
    y = rng.integers(0, 2, size=30).astype(float)
    logits = rng.normal(scale=3.0, size=(2, 30))
    w = rng.uniform(size=30)

    p = 1.0 / (1.0 + np.exp(-logits))
    expected = [-np.sum(w * (y * np.log(row) + (1 - y) * np.log(1 - row))) / np.sum(w) for row in p]

    np.testing.assert_allclose(np.asarray(log_loss(*as_arrays(y, logits, w))), expected, rtol=1e-5)


def test_optimization_direction():
    assert pearson.greater_is_better and spearman.greater_is_better
    assert not any(f.greater_is_better for f in (mae, mse, rmse, log_loss))
