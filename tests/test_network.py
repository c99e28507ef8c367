import numpy as np
import pytest

from sift.core.errors import CorruptModelError, NumericInstabilityError
from sift.core.network import HIDDEN_SIZE, FeedforwardNetwork, NetworkState, sigmoid


def test_initial_parameters_in_range(rng):
    nn = FeedforwardNetwork(7, rng=rng)
    assert nn.weights_input_hidden.shape == (7, HIDDEN_SIZE)
    assert nn.weights_hidden_output.shape == (HIDDEN_SIZE, 1)
    for arr in (nn.weights_input_hidden, nn.weights_hidden_output, nn.bias_hidden, nn.bias_output):
        assert np.all(arr >= -1.0) and np.all(arr <= 1.0)
    assert nn.learning_rate == 0.1


def test_forward_matches_definition(rng):
    nn = FeedforwardNetwork(3, rng=rng)
    x = [1, 0, 1]
    hidden, output = nn.forward(x)

    expected_hidden = [
        1 / (1 + np.exp(-(nn.bias_hidden[j] + sum(x[i] * nn.weights_input_hidden[i][j] for i in range(3)))))
        for j in range(HIDDEN_SIZE)
    ]
    expected_output = 1 / (1 + np.exp(-(nn.bias_output[0] + sum(
        expected_hidden[j] * nn.weights_hidden_output[j][0] for j in range(HIDDEN_SIZE)
    ))))
    assert np.allclose(hidden, expected_hidden)
    assert output[0] == pytest.approx(expected_output)


def test_predict_is_deterministic(rng):
    nn = FeedforwardNetwork(5, rng=rng)
    x = [1, 1, 0, 0, 1]
    first = nn.predict(x)
    assert all(nn.predict(x) == first for _ in range(10))
    assert 0.0 < first < 1.0


def test_zero_input_size_uses_biases_only(rng):
    nn = FeedforwardNetwork(0, rng=rng)
    hidden, output = nn.forward([])
    assert np.allclose(hidden, sigmoid(nn.bias_hidden))
    assert 0.0 < nn.predict([]) < 1.0
    nn.train_one([], [1.0])


def test_wrong_input_length_rejected(rng):
    nn = FeedforwardNetwork(4, rng=rng)
    with pytest.raises(ValueError):
        nn.forward([1, 0])


def test_train_one_uses_pre_update_weights(rng):
    nn = FeedforwardNetwork(3, rng=rng)
    x = np.array([1.0, 0.0, 1.0])
    w_ih, w_ho = nn.weights_input_hidden.copy(), nn.weights_hidden_output.copy()
    b_h, b_o = nn.bias_hidden.copy(), nn.bias_output.copy()

    hidden, output = nn.forward(x)
    out_delta = (1.0 - output) * output * (1 - output)
    hid_delta = np.array([
        sum(out_delta[k] * w_ho[j][k] for k in range(1)) * hidden[j] * (1 - hidden[j])
        for j in range(HIDDEN_SIZE)
    ])

    nn.train_one(x, [1.0])

    assert np.allclose(nn.weights_hidden_output, w_ho + 0.1 * np.outer(hidden, out_delta))
    assert np.allclose(nn.bias_output, b_o + 0.1 * out_delta)
    assert np.allclose(nn.weights_input_hidden, w_ih + 0.1 * np.outer(x, hid_delta))
    assert np.allclose(nn.bias_hidden, b_h + 0.1 * hid_delta)
    # Inactive inputs leave their weights untouched
    assert np.array_equal(nn.weights_input_hidden[1], w_ih[1])


def test_training_moves_prediction_toward_target(rng):
    nn = FeedforwardNetwork(4, rng=rng)
    x = [1, 0, 1, 1]
    before = nn.predict(x)
    for _ in range(50):
        nn.train_one(x, [1.0])
    assert nn.predict(x) > before


def test_nan_output_raises(rng):
    nn = FeedforwardNetwork(2, rng=rng)
    nn.bias_output[:] = np.nan
    with pytest.raises(NumericInstabilityError):
        nn.predict([1, 0])


def test_dict_round_trip_is_exact(rng):
    nn = FeedforwardNetwork(6, rng=rng)
    clone = FeedforwardNetwork.from_dict(nn.to_dict())
    x = [1, 0, 0, 1, 1, 0]
    assert clone.predict(x) == nn.predict(x)


def test_from_dict_rejects_bad_shapes(rng):
    data = FeedforwardNetwork(3, rng=rng).to_dict()
    data["input_size"] = 4
    with pytest.raises(CorruptModelError):
        FeedforwardNetwork.from_dict(data)


def test_from_dict_rejects_non_finite(rng):
    data = FeedforwardNetwork(2, rng=rng).to_dict()
    data["bias_hidden"][0] = float("inf")
    with pytest.raises(CorruptModelError):
        FeedforwardNetwork.from_dict(data)


def test_state_requires_matching_vocabulary(rng):
    with pytest.raises(CorruptModelError):
        NetworkState(network=FeedforwardNetwork(3, rng=rng), vocabulary=["only", "two"])
