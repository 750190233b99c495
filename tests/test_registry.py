"""
Tests for the model registry and trainer.
"""

from concurrent.futures import ThreadPoolExecutor
import threading
import time
import numpy as np
import pytest

from ops_intelligence.exceptions import ModelNotLoaded, ShapeMismatch, UnknownModel
from ops_intelligence.ml import Architecture, ModelRegistry, PredictionResult, TaskKind, TrainingSet


def linear_set(n=120, width=4, seed=0):
    rng = np.random.default_rng(seed)
    features = rng.random((n, width))
    labels = features @ np.arange(1, width + 1) + 0.5
    return TrainingSet(features, labels, [f'x{i}' for i in range(width)], 'y')


def class_set(n=160, seed=0):
    rng = np.random.default_rng(seed)
    features = rng.normal(size=(n, 2))
    labels = (features[:, 0] + features[:, 1] > 0).astype(int)
    return TrainingSet(features, labels, ['a', 'b'], 'label')


@pytest.fixture
def registry():
    return ModelRegistry(regression_confidence=0.8, random_state=0)


@pytest.fixture
def trained(registry):
    registry.create_model('linear', 'Linear', TaskKind.REGRESSION, input_width=4)
    registry.train('linear', linear_set(), epochs=10, batch_size=16)
    return registry


class TestCreateModel:
    """Test model creation and validation."""

    def test_new_model_is_loaded_but_untrained(self, registry):
        model = registry.create_model('m', 'M', 'regression', input_width=3)

        assert model.is_loaded
        assert not model.is_trained
        assert model.version == '1.0.0'
        assert registry.has_model('m')

    def test_rejects_non_positive_widths(self, registry):
        with pytest.raises(ValueError):
            registry.create_model('m', 'M', TaskKind.REGRESSION, input_width=0)

    def test_classification_needs_two_classes(self, registry):
        with pytest.raises(ValueError):
            registry.create_model('m', 'M', TaskKind.CLASSIFICATION, input_width=2, output_width=1)

    def test_get_model_returns_none_for_unknown_id(self, registry):
        assert registry.get_model('missing') is None


class TestTraining:
    """Test training, metrics and the atomic swap of weights."""

    def test_training_marks_model_trained_and_bumps_version(self, trained):
        model = trained.get_model('linear')

        assert model.is_trained
        assert model.version == '1.0.1'
        assert model.accuracy is not None
        assert model.last_trained is not None

    def test_metrics_report_regression_errors(self, registry):
        registry.create_model('linear', 'Linear', TaskKind.REGRESSION, input_width=4)
        metrics = registry.train('linear', linear_set(), epochs=8, batch_size=16)

        assert 1 <= metrics.epochs_trained <= 8
        assert metrics.mse is not None and metrics.mse >= 0
        assert metrics.rmse == pytest.approx(np.sqrt(metrics.mse))
        assert 0 <= metrics.accuracy <= 1

    def test_unknown_model(self, registry):
        with pytest.raises(UnknownModel):
            registry.train('missing', linear_set())

    def test_unknown_model_is_a_key_error(self, registry):
        with pytest.raises(KeyError):
            registry.predict('missing', [0.0])

    def test_width_mismatch(self, registry):
        registry.create_model('m', 'M', TaskKind.REGRESSION, input_width=3)

        with pytest.raises(ShapeMismatch):
            registry.train('m', linear_set(width=4))

    def test_empty_training_set(self, registry):
        registry.create_model('m', 'M', TaskKind.REGRESSION, input_width=2)
        empty = TrainingSet.from_rows([], [], ['a', 'b'], 'y')

        with pytest.raises(ValueError):
            registry.train('m', empty)

    def test_training_unloaded_model(self, trained):
        trained.unload('linear')

        with pytest.raises(ModelNotLoaded):
            trained.train('linear', linear_set())

    def test_failed_training_leaves_model_unchanged(self, trained):
        sample = np.full(4, 0.5)
        before = trained.predict('linear', sample).value
        broken = linear_set()
        broken.features[3, 1] = np.nan

        with pytest.raises(ValueError):
            trained.train('linear', broken, epochs=3)

        model = trained.get_model('linear')
        assert model.version == '1.0.1'
        assert trained.predict('linear', sample).value == before

    @pytest.mark.parametrize('architecture', [Architecture.DEEP, Architecture.LSTM, Architecture.CNN])
    def test_every_architecture_trains(self, registry, architecture):
        registry.create_model('m', 'M', TaskKind.REGRESSION, input_width=6, architecture=architecture)
        registry.train('m', linear_set(width=6), epochs=4, batch_size=16)

        result = registry.predict('m', np.linspace(0, 1, 6))
        assert np.isfinite(result.value)


class TestPrediction:
    """Test inference results and confidence policy."""

    def test_untrained_model_cannot_predict(self, registry):
        registry.create_model('m', 'M', TaskKind.REGRESSION, input_width=2)

        with pytest.raises(ModelNotLoaded):
            registry.predict('m', [0.1, 0.2])

    def test_single_vector_returns_one_result(self, trained):
        result = trained.predict('linear', [0.1, 0.2, 0.3, 0.4])

        assert isinstance(result, PredictionResult)
        assert isinstance(result.value, float)
        assert result.confidence == 0.8

    def test_batch_returns_one_result_per_row(self, trained):
        results = trained.predict('linear', np.zeros((5, 4)))

        assert isinstance(results, list)
        assert len(results) == 5

    def test_wrong_width_is_rejected(self, trained):
        with pytest.raises(ShapeMismatch):
            trained.predict('linear', [0.1, 0.2])

    def test_non_finite_input_is_rejected(self, trained):
        with pytest.raises(ValueError):
            trained.predict('linear', [0.1, np.inf, 0.3, 0.4])

    def test_classification_confidence_is_top_probability(self, registry):
        registry.create_model('cls', 'Classifier', TaskKind.CLASSIFICATION,
                              input_width=2, output_width=2)
        registry.train('cls', class_set(), epochs=10, batch_size=16)

        result = registry.predict('cls', [1.5, 1.0])

        assert len(result.value) == 2
        assert sum(result.value) == pytest.approx(1.0)
        assert result.confidence == max(result.value)
        assert result.explanation.startswith('Most likely class')


class TestPersistence:
    """Test save/load round trip and housekeeping."""

    def test_save_then_load_reproduces_predictions(self, trained, tmp_path):
        sample = np.array([[0.2, 0.4, 0.6, 0.8], [0.9, 0.1, 0.5, 0.3]])
        expected = [r.value for r in trained.predict('linear', sample)]

        path = trained.save('linear', tmp_path / 'models' / 'linear.joblib')
        other = ModelRegistry()
        loaded = other.load(path)

        assert loaded.id == 'linear'
        assert loaded.version == '1.0.1'
        assert loaded.is_trained
        assert [r.value for r in other.predict('linear', sample)] == expected

    def test_summary_describes_model(self, trained):
        summary = trained.summary('linear')

        assert 'Model: Linear (regression)' in summary
        assert 'Version: 1.0.1' in summary
        assert 'StandardScaler' in summary

    def test_list_models(self, trained):
        trained.create_model('other', 'Other', TaskKind.REGRESSION, input_width=1)

        assert {m.id for m in trained.list_models()} == {'linear', 'other'}


class TestConcurrency:
    """Test per-model locking between training and prediction."""

    @pytest.fixture
    def paused(self, registry, monkeypatch):
        """Two trained models; later fits block until ``release`` is set."""
        for model_id in ('a', 'b'):
            registry.create_model(model_id, model_id.upper(), TaskKind.REGRESSION, input_width=4)
            registry.train(model_id, linear_set(), epochs=3, batch_size=16)

        started, release = threading.Event(), threading.Event()
        fit = registry._fit

        def blocking_fit(*args, **kwargs):
            started.set()
            release.wait(timeout=10)
            return fit(*args, **kwargs)

        monkeypatch.setattr(registry, '_fit', blocking_fit)
        yield registry, started, release
        release.set()

    def test_training_one_model_does_not_block_another(self, paused):
        registry, started, release = paused

        with ThreadPoolExecutor(max_workers=2) as executor:
            training = executor.submit(registry.train, 'a', linear_set(), epochs=3, batch_size=16)
            assert started.wait(timeout=5)

            prediction = executor.submit(registry.predict, 'b', np.full(4, 0.5))
            result = prediction.result(timeout=5)

            assert not training.done()
            release.set()
            training.result(timeout=10)

        assert np.isfinite(result.value)
        assert registry.get_model('b').version == '1.0.1'

    def test_prediction_waits_for_training_on_the_same_model(self, paused):
        registry, started, release = paused

        with ThreadPoolExecutor(max_workers=2) as executor:
            training = executor.submit(registry.train, 'a', linear_set(), epochs=3, batch_size=16)
            assert started.wait(timeout=5)

            prediction = executor.submit(registry.predict, 'a', np.full(4, 0.5))
            time.sleep(0.2)
            assert not prediction.done()

            release.set()
            training.result(timeout=10)
            result = prediction.result(timeout=10)

        assert np.isfinite(result.value)
        assert registry.get_model('a').version == '1.0.2'

    def test_held_model_lock_only_blocks_that_model(self, trained):
        trained.create_model('other', 'Other', TaskKind.REGRESSION, input_width=4)
        trained.train('other', linear_set(seed=1), epochs=3, batch_size=16)

        with ThreadPoolExecutor(max_workers=2) as executor:
            with trained._lock_for('linear'):
                same = executor.submit(trained.predict, 'linear', np.full(4, 0.5))
                other = executor.submit(trained.predict, 'other', np.full(4, 0.5))

                assert np.isfinite(other.result(timeout=5).value)
                time.sleep(0.1)
                assert not same.done()

            assert np.isfinite(same.result(timeout=5).value)
