"""
Feedforward neural network for Sift.

A single hidden layer with sigmoid activations, trained one example at a
time with plain backpropagation. Architecture and learning rate are fixed:
no momentum, decay or regularization, so that training runs are
comparable across model generations.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from sift.core.errors import CorruptModelError, NumericInstabilityError

HIDDEN_SIZE = 20
OUTPUT_SIZE = 1
LEARNING_RATE = 0.1


def sigmoid(x: np.ndarray) -> np.ndarray:
    # exp overflows to inf for very negative inputs, which still gives 0.0
    with np.errstate(over='ignore'):
        return 1.0 / (1.0 + np.exp(-x))


class FeedforwardNetwork:
    """
    Input -> hidden (sigmoid) -> output (sigmoid) network.

    Weight matrices are stored as ``weights_input_hidden[i][j]`` (input i to
    hidden j) and ``weights_hidden_output[j][k]`` (hidden j to output k).
    """
    def __init__(
        self,
        input_size: int,
        hidden_size: int = HIDDEN_SIZE,
        output_size: int = OUTPUT_SIZE,
        learning_rate: float = LEARNING_RATE,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize the network with weights and biases drawn from U(-1, 1).

        Args:
            input_size: Number of input features (vocabulary size, may be 0)
            hidden_size: Number of hidden units
            output_size: Number of outputs
            learning_rate: SGD step size
            rng: Random generator used for initialization
        """
        rng = rng if rng is not None else np.random.default_rng()
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.output_size = output_size
        self.learning_rate = learning_rate

        self.weights_input_hidden = rng.uniform(-1.0, 1.0, size=(input_size, hidden_size))
        self.weights_hidden_output = rng.uniform(-1.0, 1.0, size=(hidden_size, output_size))
        self.bias_hidden = rng.uniform(-1.0, 1.0, size=hidden_size)
        self.bias_output = rng.uniform(-1.0, 1.0, size=output_size)

    def _as_input(self, inputs: Sequence[float]) -> np.ndarray:
        x = np.asarray(inputs, dtype=np.float64)
        if x.shape != (self.input_size,):
            raise ValueError(
                f"Expected input vector of length {self.input_size}, got shape {x.shape}"
            )
        return x

    def forward(self, inputs: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Forward propagation.

        Args:
            inputs: Feature vector of length input_size

        Returns:
            Tuple of (hidden activations, output activations)
        """
        x = self._as_input(inputs)
        # With input_size == 0 the product is a zero vector and only biases count
        hidden = sigmoid(self.bias_hidden + x @ self.weights_input_hidden)
        output = sigmoid(self.bias_output + hidden @ self.weights_hidden_output)
        return hidden, output

    def train_one(self, inputs: Sequence[float], target: Sequence[float]) -> None:
        """
        One stochastic backpropagation step on a single example.

        All deltas are computed from the pre-update weights before any
        weight or bias is changed.

        Args:
            inputs: Feature vector
            target: Desired output vector
        """
        x = self._as_input(inputs)
        t = np.asarray(target, dtype=np.float64)
        hidden, output = self.forward(x)

        output_delta = (t - output) * output * (1.0 - output)
        hidden_delta = (self.weights_hidden_output @ output_delta) * hidden * (1.0 - hidden)

        lr = self.learning_rate
        self.weights_hidden_output += lr * np.outer(hidden, output_delta)
        self.bias_output += lr * output_delta
        self.weights_input_hidden += lr * np.outer(x, hidden_delta)
        self.bias_hidden += lr * hidden_delta

    def predict(self, inputs: Sequence[float]) -> float:
        """
        Probability that the article would be approved.

        Args:
            inputs: Feature vector

        Returns:
            First output activation, in (0, 1)

        Raises:
            NumericInstabilityError: If the output is NaN or infinite
        """
        _, output = self.forward(inputs)
        value = float(output[0])
        if not np.isfinite(value):
            raise NumericInstabilityError(
                "Network produced a non-finite output",
                details={"output": repr(value)},
            )
        return value

    def is_finite(self) -> bool:
        """Check that every weight and bias is a finite float."""
        return all(
            np.all(np.isfinite(arr))
            for arr in (
                self.weights_input_hidden,
                self.weights_hidden_output,
                self.bias_hidden,
                self.bias_output,
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Export network parameters as plain nested lists of floats.
        """
        return {
            "input_size": self.input_size,
            "hidden_size": self.hidden_size,
            "output_size": self.output_size,
            "weights_input_hidden": self.weights_input_hidden.tolist(),
            "weights_hidden_output": self.weights_hidden_output.tolist(),
            "bias_hidden": self.bias_hidden.tolist(),
            "bias_output": self.bias_output.tolist(),
            "learning_rate": self.learning_rate,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedforwardNetwork":
        """
        Rebuild a network from exported parameters.

        Args:
            data: Output of to_dict()

        Returns:
            FeedforwardNetwork

        Raises:
            CorruptModelError: If shapes disagree or values are not finite
        """
        try:
            input_size = int(data["input_size"])
            hidden_size = int(data["hidden_size"])
            output_size = int(data["output_size"])
            nn = cls.__new__(cls)
            nn.input_size = input_size
            nn.hidden_size = hidden_size
            nn.output_size = output_size
            nn.learning_rate = float(data.get("learning_rate") or LEARNING_RATE)
            nn.weights_input_hidden = np.array(data["weights_input_hidden"], dtype=np.float64).reshape(
                input_size, hidden_size
            )
            nn.weights_hidden_output = np.array(data["weights_hidden_output"], dtype=np.float64).reshape(
                hidden_size, output_size
            )
            nn.bias_hidden = np.array(data["bias_hidden"], dtype=np.float64).reshape(hidden_size)
            nn.bias_output = np.array(data["bias_output"], dtype=np.float64).reshape(output_size)
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptModelError(f"Invalid network parameters: {e}") from e

        if not nn.is_finite():
            raise CorruptModelError("Network parameters contain non-finite values")
        return nn


@dataclass
class NetworkState:
    """
    A trained network together with the vocabulary that defines its inputs.
    """
    network: FeedforwardNetwork
    vocabulary: List[str]
    training_count: int = 0
    model_id: Optional[int] = None
    version: int = 0
    last_trained_at: Optional[datetime] = None
    persisted: bool = False

    def __post_init__(self):
        if self.network.input_size != len(self.vocabulary):
            raise CorruptModelError(
                "Vocabulary size does not match network input size",
                details={
                    "input_size": self.network.input_size,
                    "vocabulary": len(self.vocabulary),
                },
            )
