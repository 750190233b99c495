"""
Trainable networks behind the model registry.

Every architecture shares one calling convention: a fixed-width feature
vector goes in, a prediction comes out. The architectures differ only in
how that vector is encoded before the multi-layer perceptron head:

- simple / deep: standardised features feed the perceptron directly;
- lstm: features are reshaped to a (timesteps, channels) sequence and run
  through a fixed recurrent reservoir;
- cnn: the same sequence is scanned by random 1-D convolution kernels with
  max and proportion-positive pooling.
"""

from typing import List, Tuple, Optional
import copy
import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.metrics import log_loss, mean_squared_error
from sklearn.neural_network import MLPClassifier, MLPRegressor
from sklearn.preprocessing import StandardScaler

from .models import Architecture, TaskKind


HIDDEN_LAYERS = {
    Architecture.SIMPLE: (64, 32),
    Architecture.DEEP: (128, 64, 32),
    Architecture.LSTM: (25,),
    Architecture.CNN: (50,),
}

# L2 penalty per architecture; the deep stack is regularised harder
L2_PENALTY = {
    Architecture.SIMPLE: 1e-4,
    Architecture.DEEP: 1e-3,
    Architecture.LSTM: 1e-4,
    Architecture.CNN: 1e-4,
}

LEARNING_RATE = 0.001


def sequence_shape(width: int, timesteps: int = 0) -> Tuple[int, int]:
    """
    Shape a flat feature vector is reshaped to for sequence architectures.

    Args:
        width: Flat feature vector width
        timesteps: Requested number of timesteps (0 = one feature per step)

    Returns:
        (timesteps, channels)
    """
    if timesteps and timesteps > 0 and width % timesteps == 0:
        return timesteps, width // timesteps
    return width, 1


class RecurrentEncoder(BaseEstimator, TransformerMixin):
    """Fixed random recurrent reservoir over the reshaped feature sequence."""

    def __init__(self, input_width: int = 1, units: int = 50, timesteps: int = 0,
                 spectral_radius: float = 0.9, random_state: Optional[int] = None):
        self.input_width = input_width
        self.units = units
        self.timesteps = timesteps
        self.spectral_radius = spectral_radius
        self.random_state = random_state

    def fit(self, X, y=None):
        steps, channels = sequence_shape(self.input_width, self.timesteps)
        rng = np.random.default_rng(self.random_state)
        self.shape_ = (steps, channels)
        self.input_weights_ = rng.uniform(-0.5, 0.5, size=(channels, self.units))
        recurrent = rng.normal(size=(self.units, self.units))
        radius = np.max(np.abs(np.linalg.eigvals(recurrent)))
        self.recurrent_weights_ = recurrent * (self.spectral_radius / radius)
        return self

    def transform(self, X):
        X = np.asarray(X, dtype=float)
        sequence = X.reshape(len(X), *self.shape_)
        state = np.zeros((len(X), self.units))
        total = np.zeros_like(state)
        for step in range(sequence.shape[1]):
            state = np.tanh(sequence[:, step, :] @ self.input_weights_
                            + state @ self.recurrent_weights_)
            total += state
        return np.hstack([state, total / sequence.shape[1]])

    def parameter_count(self) -> int:
        return self.input_weights_.size + self.recurrent_weights_.size


class ConvolutionEncoder(BaseEstimator, TransformerMixin):
    """Random 1-D convolution kernels with max and proportion-positive pooling."""

    def __init__(self, input_width: int = 1, n_kernels: int = 32, kernel_size: int = 3,
                 timesteps: int = 0, random_state: Optional[int] = None):
        self.input_width = input_width
        self.n_kernels = n_kernels
        self.kernel_size = kernel_size
        self.timesteps = timesteps
        self.random_state = random_state

    def fit(self, X, y=None):
        steps, channels = sequence_shape(self.input_width, self.timesteps)
        rng = np.random.default_rng(self.random_state)
        self.shape_ = (steps, channels)
        kernels = rng.normal(size=(self.n_kernels, self.kernel_size, channels))
        self.kernels_ = kernels - kernels.mean(axis=1, keepdims=True)
        self.biases_ = rng.uniform(-1.0, 1.0, size=self.n_kernels)
        return self

    def transform(self, X):
        X = np.asarray(X, dtype=float)
        sequence = X.reshape(len(X), *self.shape_)
        if sequence.shape[1] < self.kernel_size:
            pad = self.kernel_size - sequence.shape[1]
            sequence = np.pad(sequence, ((0, 0), (0, pad), (0, 0)))
        # (samples, windows, channels, kernel_size)
        windows = np.lib.stride_tricks.sliding_window_view(sequence, self.kernel_size, axis=1)
        activations = np.einsum('nwck,fkc->nwf', windows, self.kernels_) + self.biases_
        return np.hstack([
            np.maximum(activations, 0.0).max(axis=1),
            (activations > 0).mean(axis=1),
        ])

    def parameter_count(self) -> int:
        return self.kernels_.size + self.biases_.size


class Network:
    """
    Scaler, optional sequence encoder and perceptron head for one model.

    Regression-family tasks (regression, timeseries, anomaly_detection) use a
    linear output with squared-error loss and standardised targets;
    classification uses a softmax output with log loss over class indices.
    """

    def __init__(self,
                 task_kind: TaskKind,
                 architecture: Architecture,
                 input_width: int,
                 output_width: int,
                 timesteps: int = 0,
                 random_state: Optional[int] = None):
        self.task_kind = TaskKind(task_kind)
        self.architecture = Architecture(architecture)
        self.input_width = input_width
        self.output_width = output_width
        self.timesteps = timesteps
        self.random_state = random_state

        self.scaler = StandardScaler()
        self.encoder = self._build_encoder()
        self.estimator = self._build_estimator()
        self.target_mean_ = np.zeros(output_width)
        self.target_scale_ = np.ones(output_width)

    @property
    def is_classifier(self) -> bool:
        return self.task_kind == TaskKind.CLASSIFICATION

    @property
    def classes(self) -> np.ndarray:
        return np.arange(self.output_width)

    def _build_encoder(self):
        if self.architecture == Architecture.LSTM:
            return RecurrentEncoder(input_width=self.input_width, timesteps=self.timesteps,
                                    random_state=self.random_state)
        if self.architecture == Architecture.CNN:
            return ConvolutionEncoder(input_width=self.input_width, timesteps=self.timesteps,
                                      random_state=self.random_state)
        return None

    def _build_estimator(self):
        params = dict(
            hidden_layer_sizes=HIDDEN_LAYERS[self.architecture],
            activation='relu',
            solver='adam',
            alpha=L2_PENALTY[self.architecture],
            learning_rate_init=LEARNING_RATE,
            random_state=self.random_state,
        )
        if self.is_classifier:
            return MLPClassifier(**params)
        return MLPRegressor(**params)

    def fresh(self) -> 'Network':
        """A new, untrained network with the same configuration."""
        return Network(self.task_kind, self.architecture, self.input_width,
                       self.output_width, self.timesteps, self.random_state)

    def prepare(self, features: np.ndarray, labels: np.ndarray, batch_size: int) -> None:
        """Fit the scaler, encoder and target scaling on the training split."""
        self.scaler.fit(features)
        if self.encoder is not None:
            self.encoder.fit(self.scaler.transform(features))
        if not self.is_classifier:
            targets = labels.reshape(len(labels), -1)
            self.target_mean_ = targets.mean(axis=0)
            scale = targets.std(axis=0)
            self.target_scale_ = np.where(scale > 0, scale, 1.0)
        self.estimator.set_params(batch_size=max(1, min(batch_size, len(features))))

    def encode(self, features: np.ndarray) -> np.ndarray:
        encoded = self.scaler.transform(features)
        if self.encoder is not None:
            encoded = self.encoder.transform(encoded)
        return encoded

    def _scaled_target(self, labels: np.ndarray) -> np.ndarray:
        targets = (labels.reshape(len(labels), -1) - self.target_mean_) / self.target_scale_
        return targets.ravel() if self.output_width == 1 else targets

    def partial_fit(self, encoded: np.ndarray, labels: np.ndarray) -> None:
        """Run one epoch over the encoded training rows."""
        if self.is_classifier:
            self.estimator.partial_fit(encoded, labels.astype(int), classes=self.classes)
        else:
            self.estimator.partial_fit(encoded, self._scaled_target(labels))

    def loss(self, encoded: np.ndarray, labels: np.ndarray) -> float:
        """Loss in training space (standardised targets for regression)."""
        if self.is_classifier:
            probabilities = self.estimator.predict_proba(encoded)
            return float(log_loss(labels.astype(int), probabilities, labels=self.classes))
        predicted = self.estimator.predict(encoded).reshape(len(encoded), -1)
        expected = self._scaled_target(labels).reshape(len(encoded), -1)
        return float(mean_squared_error(expected, predicted))

    def predict(self, features: np.ndarray) -> np.ndarray:
        """
        Predict for a 2-D batch.

        Returns:
            (rows, output_width) array: values in label units for regression,
            class probabilities for classification
        """
        encoded = self.encode(features)
        if self.is_classifier:
            return self.estimator.predict_proba(encoded)
        scaled = self.estimator.predict(encoded).reshape(len(encoded), -1)
        return scaled * self.target_scale_ + self.target_mean_

    def snapshot(self):
        """Copy of the current estimator weights."""
        return copy.deepcopy(self.estimator)

    def restore(self, estimator) -> None:
        self.estimator = estimator

    def parameter_count(self) -> int:
        count = 0
        if hasattr(self.estimator, 'coefs_'):
            count += sum(w.size for w in self.estimator.coefs_)
            count += sum(b.size for b in self.estimator.intercepts_)
        if self.encoder is not None and hasattr(self.encoder, 'shape_'):
            count += self.encoder.parameter_count()
        return count

    def layer_chain(self) -> List[str]:
        layers = ['StandardScaler']
        if self.encoder is not None:
            layers.append(type(self.encoder).__name__)
        layers.extend(f"Dense({units}, relu)" for units in HIDDEN_LAYERS[self.architecture])
        head = 'softmax' if self.is_classifier else 'linear'
        layers.append(f"Dense({self.output_width}, {head})")
        return layers
