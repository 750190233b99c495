"""
Model registry: creates, trains, serves and persists prediction models.

Each model owns its own network and its own lock, so a long training run
on one model never blocks predictions against another. Training works on a
fresh network and swaps weights and metadata in together only once it has
finished, so a failed run leaves the registered model untouched.
"""

from typing import List, Dict, Optional, Union
from datetime import datetime
from pathlib import Path
from threading import Lock, RLock
import logging
import joblib
import numpy as np
from sklearn.metrics import (
    accuracy_score,
    f1_score,
    mean_absolute_error,
    mean_squared_error,
    precision_score,
    recall_score,
)
from sklearn.model_selection import train_test_split

from ..exceptions import ModelNotLoaded, ShapeMismatch, UnknownModel
from .models import (
    Architecture,
    ModelMetrics,
    PredictionModel,
    PredictionResult,
    TaskKind,
    TrainingSet,
)
from .networks import Network


logger = logging.getLogger(__name__)


class ModelRegistry:
    """
    Registry of trainable numeric models keyed by model id.

    Prediction confidence policy: classification models report the highest
    class probability; all other task kinds report a fixed nominal
    ``regression_confidence``.
    """

    def __init__(self,
                 regression_confidence: float = 0.8,
                 random_state: Optional[int] = 42,
                 sequence_timesteps: int = 0):
        """
        Initialize an empty registry.

        Args:
            regression_confidence: Confidence reported for non-classification predictions
            random_state: Seed for weight initialisation and validation splits
            sequence_timesteps: Timesteps for lstm/cnn reshaping (0 = one feature per step)
        """
        self.regression_confidence = regression_confidence
        self.random_state = random_state
        self.sequence_timesteps = sequence_timesteps
        self._models: Dict[str, PredictionModel] = {}
        self._locks: Dict[str, RLock] = {}
        self._registry_lock = Lock()

    def _lock_for(self, model_id: str) -> RLock:
        with self._registry_lock:
            return self._locks.setdefault(model_id, RLock())

    def _require(self, model_id: str) -> PredictionModel:
        with self._registry_lock:
            model = self._models.get(model_id)
        if model is None:
            raise UnknownModel(model_id)
        return model

    def _register(self, model: PredictionModel) -> None:
        with self._registry_lock:
            self._models[model.id] = model
            self._locks.setdefault(model.id, RLock())

    def create_model(self,
                     model_id: str,
                     name: str,
                     task_kind: Union[TaskKind, str],
                     input_width: int,
                     output_width: int = 1,
                     architecture: Union[Architecture, str] = Architecture.SIMPLE) -> PredictionModel:
        """
        Create (or replace) a model with a freshly initialised network.

        Args:
            model_id: Registry key
            name: Human-readable name
            task_kind: regression, classification, timeseries or anomaly_detection
            input_width: Feature vector width every input must match
            output_width: Output units (number of classes for classification)
            architecture: simple, deep, lstm or cnn

        Returns:
            The registered, loaded but untrained PredictionModel
        """
        task_kind = TaskKind(task_kind)
        architecture = Architecture(architecture)
        if input_width < 1 or output_width < 1:
            raise ValueError("Input and output widths must be positive")
        if task_kind == TaskKind.CLASSIFICATION and output_width < 2:
            raise ValueError("Classification models need at least two output classes")

        network = Network(task_kind, architecture, input_width, output_width,
                          timesteps=self.sequence_timesteps,
                          random_state=self.random_state)
        model = PredictionModel(
            id=model_id,
            name=name,
            task_kind=task_kind,
            architecture=architecture,
            input_width=input_width,
            output_width=output_width,
            network=network,
        )
        with self._lock_for(model_id):
            self._register(model)
        logger.info("Created %s model %s (%s, %d -> %d)",
                    architecture.value, model_id, task_kind.value, input_width, output_width)
        return model

    def train(self,
              model_id: str,
              training_set: TrainingSet,
              epochs: int = 100,
              batch_size: int = 32,
              validation_split: float = 0.2,
              patience: int = 10) -> ModelMetrics:
        """
        Fit a model with early stopping on a held-out validation split.

        Training stops once validation loss has not improved for ``patience``
        consecutive epochs and the best-seen weights are restored.

        Args:
            model_id: Registered model id
            training_set: Feature rows and labels
            epochs: Maximum number of passes over the training split
            batch_size: Minibatch size
            validation_split: Fraction of rows held out for validation
            patience: Epochs without improvement before stopping

        Returns:
            ModelMetrics for the restored best weights
        """
        with self._lock_for(model_id):
            model = self._require(model_id)
            if not model.is_loaded:
                raise ModelNotLoaded(model_id)
            if training_set.width != model.input_width:
                raise ShapeMismatch(model_id, model.input_width, training_set.width)
            if len(training_set) == 0:
                raise ValueError(f"Training set for model {model_id} is empty")
            if epochs < 1:
                raise ValueError("Epochs must be at least 1")

            network = model.network.fresh()
            metrics = self._fit(network, training_set, epochs, batch_size,
                                validation_split, patience)

            # Weights and metadata change together, only after a successful fit
            model.network = network
            model.is_trained = True
            model.accuracy = metrics.accuracy
            model.last_trained = datetime.now()
            model.version = model.next_version()

        logger.info("Model %s trained for %d epochs: accuracy=%.4f val_loss=%.4f",
                    model_id, metrics.epochs_trained, metrics.accuracy, metrics.val_loss)
        return metrics

    def _split(self, training_set: TrainingSet, validation_split: float):
        features, labels = training_set.features, training_set.labels
        n_validation = int(len(features) * validation_split)
        if validation_split <= 0 or n_validation < 1 or len(features) - n_validation < 1:
            return features, features[:0], labels, labels[:0]
        return train_test_split(features, labels, test_size=n_validation,
                                random_state=self.random_state)

    def _fit(self, network: Network, training_set: TrainingSet, epochs: int,
             batch_size: int, validation_split: float, patience: int) -> ModelMetrics:
        x_train, x_val, y_train, y_val = self._split(training_set, validation_split)
        network.prepare(x_train, y_train, batch_size)
        encoded_train = network.encode(x_train)
        has_validation = len(x_val) > 0
        encoded_val = network.encode(x_val) if has_validation else encoded_train
        labels_val = y_val if has_validation else y_train

        best_loss = np.inf
        best_weights = None
        train_loss = np.inf
        waited = 0
        epochs_trained = 0
        stopped_early = False

        for _ in range(epochs):
            network.partial_fit(encoded_train, y_train)
            epochs_trained += 1
            train_loss = network.loss(encoded_train, y_train)
            val_loss = network.loss(encoded_val, labels_val)
            if val_loss < best_loss:
                best_loss = val_loss
                best_weights = network.snapshot()
                waited = 0
            else:
                waited += 1
                if waited >= patience:
                    stopped_early = True
                    break

        if best_weights is not None:
            network.restore(best_weights)
        return self._metrics(network, x_val if has_validation else x_train, labels_val,
                             train_loss, best_loss, epochs_trained, stopped_early)

    def _metrics(self, network: Network, features: np.ndarray, labels: np.ndarray,
                 train_loss: float, val_loss: float, epochs_trained: int,
                 stopped_early: bool) -> ModelMetrics:
        outputs = network.predict(features)
        if network.is_classifier:
            predicted = outputs.argmax(axis=1)
            expected = labels.astype(int)
            return ModelMetrics(
                accuracy=float(accuracy_score(expected, predicted)),
                loss=float(train_loss),
                val_loss=float(val_loss),
                epochs_trained=epochs_trained,
                stopped_early=stopped_early,
                precision=float(precision_score(expected, predicted, average='macro', zero_division=0)),
                recall=float(recall_score(expected, predicted, average='macro', zero_division=0)),
                f1=float(f1_score(expected, predicted, average='macro', zero_division=0)),
            )

        expected = labels.reshape(len(labels), -1)
        mse = float(mean_squared_error(expected, outputs))
        return ModelMetrics(
            # Validation loss is measured on standardised targets, so 1 - loss tracks R^2
            accuracy=float(max(0.0, 1.0 - val_loss)),
            loss=float(train_loss),
            val_loss=float(val_loss),
            epochs_trained=epochs_trained,
            stopped_early=stopped_early,
            mse=mse,
            rmse=float(np.sqrt(mse)),
            mae=float(mean_absolute_error(expected, outputs)),
        )

    def predict(self,
                model_id: str,
                inputs) -> Union[PredictionResult, List[PredictionResult]]:
        """
        Run inference.

        Args:
            model_id: Registered model id
            inputs: One feature vector, or a 2-D batch of vectors

        Returns:
            One PredictionResult for a single vector, or a list with one
            result per row for a batch
        """
        with self._lock_for(model_id):
            model = self._require(model_id)
            if not model.is_loaded:
                raise ModelNotLoaded(model_id)
            if not model.is_trained:
                raise ModelNotLoaded(model_id, "not trained")

            batch = np.asarray(inputs, dtype=float)
            single = batch.ndim == 1
            batch = np.atleast_2d(batch)
            if batch.ndim != 2 or batch.shape[1] != model.input_width:
                raise ShapeMismatch(model_id, model.input_width, batch.shape[-1])
            if not np.all(np.isfinite(batch)):
                raise ValueError(f"Non-finite feature values passed to model {model_id}")

            outputs = model.network.predict(batch)

        results = [self._to_result(model, row) for row in outputs]
        return results[0] if single else results

    def _to_result(self, model: PredictionModel, row: np.ndarray) -> PredictionResult:
        if model.task_kind == TaskKind.CLASSIFICATION:
            probabilities = [float(p) for p in row]
            best = int(np.argmax(row))
            return PredictionResult(
                value=probabilities,
                confidence=float(row[best]),
                explanation=f"Most likely class {best}",
            )
        value = float(row[0]) if len(row) == 1 else [float(v) for v in row]
        return PredictionResult(value=value, confidence=self.regression_confidence)

    def save(self, model_id: str, path: Union[str, Path]) -> Path:
        """
        Persist a model's metadata and network with joblib.

        Args:
            model_id: Registered model id
            path: Target file

        Returns:
            The path written
        """
        path = Path(path)
        with self._lock_for(model_id):
            model = self._require(model_id)
            if not model.is_loaded:
                raise ModelNotLoaded(model_id)
            artifact = {
                'metadata': model.to_dict(),
                'network': model.network,
            }
            path.parent.mkdir(parents=True, exist_ok=True)
            joblib.dump(artifact, path)
        logger.info("Model %s saved to %s", model.name, path)
        return path

    def load(self, path: Union[str, Path]) -> PredictionModel:
        """
        Load a model saved with ``save`` and register it under its saved id.

        Args:
            path: File written by ``save``

        Returns:
            The registered PredictionModel
        """
        artifact = joblib.load(Path(path))
        metadata = artifact['metadata']
        last_trained = metadata.get('last_trained')
        model = PredictionModel(
            id=metadata['id'],
            name=metadata['name'],
            task_kind=TaskKind(metadata['task_kind']),
            architecture=Architecture(metadata['architecture']),
            input_width=metadata['input_width'],
            output_width=metadata['output_width'],
            version=metadata['version'],
            accuracy=metadata.get('accuracy'),
            last_trained=datetime.fromisoformat(last_trained) if last_trained else None,
            is_trained=metadata['is_trained'],
            network=artifact['network'],
        )
        with self._lock_for(model.id):
            self._register(model)
        logger.info("Loaded model %s from %s", model.id, path)
        return model

    def unload(self, model_id: str) -> None:
        """Drop a model's network; it stays registered but cannot predict."""
        with self._lock_for(model_id):
            model = self._require(model_id)
            model.network = None
            model.is_trained = False

    def get_model(self, model_id: str) -> Optional[PredictionModel]:
        with self._registry_lock:
            return self._models.get(model_id)

    def has_model(self, model_id: str) -> bool:
        return self.get_model(model_id) is not None

    def list_models(self) -> List[PredictionModel]:
        with self._registry_lock:
            return list(self._models.values())

    def summary(self, model_id: str) -> str:
        """Human-readable description of a model."""
        model = self._require(model_id)
        if not model.is_loaded:
            return f"Model {model_id} ({model.name}) is not loaded"

        accuracy = f"{model.accuracy * 100:.2f}%" if model.accuracy is not None else 'Not trained'
        last_trained = model.last_trained.strftime('%Y-%m-%d %H:%M:%S') if model.last_trained else 'Never'
        layers = model.network.layer_chain()
        lines = [
            f"Model: {model.name} ({model.task_kind.value})",
            f"Version: {model.version}",
            f"Architecture: {model.architecture.value}",
            f"Total Parameters: {model.network.parameter_count():,}",
            f"Accuracy: {accuracy}",
            f"Last Trained: {last_trained}",
            f"Layers: {len(layers)}",
            f"Chain: {' -> '.join(layers)}",
        ]
        return "\n".join(lines)
