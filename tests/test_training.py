"""
Tests for losses, the trainer and the CLI
=========================================

Run with: pytest tests/
"""

import pytest
import torch

from train_trm import TRMModel, TRMConfig, TrainingConfig, LossType, train
from train_trm.cli import main, read_rows
from train_trm.config import get_preset_config
from train_trm.data.base import TrainingExample
from train_trm.data.tasks import CopyTask
from train_trm.trainer import Trainer, TrainingMetrics
from train_trm.utils import (
    ShapeMismatchError,
    compute_loss,
    loss_gradient,
    mae_gradient,
    mae_loss,
    mse_gradient,
    mse_loss,
)


@pytest.fixture
def copy_config():
    return TRMConfig(
        input_dim=3,
        output_dim=3,
        hidden_dim=8,
        latent_dim=4,
        l_layers=2,
        h_cycles=2,
        l_cycles=2,
    )


@pytest.fixture
def copy_examples():
    return CopyTask(n_examples=10, dim=3, seed=0).examples()


def snapshot_weights(model):
    return [(layer.weights.clone(), layer.bias.clone()) for layer in model.network.layers]


def weights_equal(model, snapshot):
    return all(
        torch.equal(layer.weights, w) and torch.equal(layer.bias, b)
        for layer, (w, b) in zip(model.network.layers, snapshot)
    )


class TestLosses:
    """Tests for loss functions and their gradients."""

    def test_mse(self):
        p = torch.tensor([[1.0], [2.0]])
        t = torch.tensor([[2.0], [3.0]])
        assert mse_loss(p, t) == pytest.approx(1.0)

    def test_mae(self):
        p = torch.tensor([[1.0, -1.0], [0.0, 4.0]])
        t = torch.tensor([[2.0, 1.0], [0.0, 1.0]])
        # (1 + 2 + 0 + 3) / 4
        assert mae_loss(p, t) == pytest.approx(1.5)

    def test_zero_loss(self):
        x = torch.randn(3, 4)
        assert mse_loss(x, x) == 0.0
        assert mae_loss(x, x) == 0.0

    def test_compute_loss_dispatch(self):
        p = torch.tensor([[0.0, 2.0]])
        t = torch.tensor([[1.0, 0.0]])
        assert compute_loss(p, t) == pytest.approx(2.5)
        assert compute_loss(p, t, LossType.MAE) == pytest.approx(1.5)
        assert compute_loss(p, t, "mae") == pytest.approx(1.5)

    def test_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            mse_loss(torch.zeros(2, 3), torch.zeros(2, 2))
        with pytest.raises(ShapeMismatchError):
            mae_gradient(torch.zeros(1, 3), torch.zeros(3, 1))

    def test_mse_gradient(self):
        p = torch.tensor([[1.0], [2.0]])
        t = torch.tensor([[2.0], [3.0]])
        assert torch.allclose(mse_gradient(p, t), torch.tensor([[-1.0], [-1.0]]))

    def test_mae_gradient(self):
        p = torch.tensor([[1.0, -1.0], [0.0, 4.0]])
        t = torch.tensor([[2.0, 1.0], [0.0, 1.0]])
        expected = torch.tensor([[-0.25, -0.25], [0.0, 0.25]])
        assert torch.allclose(mae_gradient(p, t), expected)

    @pytest.mark.parametrize("loss_type", list(LossType))
    def test_gradient_matches_autograd(self, loss_type):
        gen = torch.Generator().manual_seed(0)
        p = torch.randn(3, 4, generator=gen)
        t = torch.randn(3, 4, generator=gen)

        leaf = p.clone().requires_grad_(True)
        if loss_type is LossType.MSE:
            torch.mean((leaf - t) ** 2).backward()
        else:
            torch.mean(torch.abs(leaf - t)).backward()

        assert torch.allclose(loss_gradient(p, t, loss_type), leaf.grad, atol=1e-6)


class TestTrainer:
    """Tests for Trainer."""

    def test_evaluate_leaves_weights(self, copy_config, copy_examples):
        model = TRMModel(copy_config, seed=0)
        before = snapshot_weights(model)
        trainer = Trainer(model, TrainingConfig())

        loss = trainer.evaluate(copy_examples)

        assert loss > 0.0
        assert weights_equal(model, before)
        assert trainer.evaluate(copy_examples) == loss

    def test_evaluate_matches_mean_loss(self, copy_config, copy_examples):
        model = TRMModel(copy_config, seed=0)
        trainer = Trainer(model, TrainingConfig(loss_type="mae"))
        expected = sum(
            compute_loss(model.forward(x), y, LossType.MAE) for x, y in copy_examples
        ) / len(copy_examples)
        assert trainer.evaluate(copy_examples) == pytest.approx(expected)

    def test_empty_examples(self, copy_config):
        trainer = Trainer(TRMModel(copy_config), TrainingConfig())
        with pytest.raises(ValueError):
            trainer.evaluate([])
        with pytest.raises(ValueError):
            trainer.train_epoch([])
        with pytest.raises(ValueError):
            trainer.train([])

    def test_train_step_returns_pre_update_loss(self, copy_config, copy_examples):
        model = TRMModel(copy_config, seed=0)
        trainer = Trainer(model, TrainingConfig(learning_rate=0.1))
        x, y = copy_examples[0]
        expected = compute_loss(model.forward(x), y)

        assert trainer.train_step(copy_examples[0]) == pytest.approx(expected)

    def test_train_step_updates_weights(self, copy_config, copy_examples):
        model = TRMModel(copy_config, seed=0)
        before = snapshot_weights(model)
        Trainer(model, TrainingConfig(learning_rate=0.1)).train_step(copy_examples[0])
        assert not weights_equal(model, before)

    def test_no_update_policy(self, copy_config, copy_examples):
        model = TRMModel(copy_config, seed=0)
        before = snapshot_weights(model)
        config = TrainingConfig(epochs=3, apply_updates=False, log_interval=0)

        metrics = Trainer(model, config).train(copy_examples)

        assert weights_equal(model, before)
        assert len(metrics.losses) == 4
        assert all(loss == pytest.approx(metrics.initial_loss) for loss in metrics.losses)

    def test_metrics(self, copy_config, copy_examples):
        model = TRMModel(copy_config, seed=0)
        config = TrainingConfig(epochs=5, learning_rate=0.01, log_interval=2)
        train_examples, val_examples = copy_examples[:8], copy_examples[8:]

        metrics = Trainer(model, config).train(train_examples, val_examples)

        assert isinstance(metrics, TrainingMetrics)
        assert len(metrics.losses) == 6
        assert len(metrics.val_losses) == 5
        assert metrics.losses[0] == metrics.initial_loss
        assert metrics.losses[-1] == metrics.final_loss
        assert all(torch.isfinite(torch.tensor(metrics.losses)))

    def test_logging(self, copy_config, copy_examples, capsys):
        model = TRMModel(copy_config, seed=0)
        config = TrainingConfig(epochs=4, log_interval=2)
        Trainer(model, config).train(copy_examples)

        out = capsys.readouterr().out
        assert "Initial loss" in out
        assert "Epoch 0:" in out
        assert "Epoch 2:" in out
        assert "Epoch 1:" not in out
        assert "Final loss" in out

    def test_batched_example(self, copy_config):
        model = TRMModel(copy_config, seed=0)
        x = torch.rand(4, 3)
        loss = Trainer(model, TrainingConfig(learning_rate=0.1)).train_step(
            TrainingExample(x, x.clone())
        )
        assert loss >= 0.0


class TestTrainFunction:
    """Tests for the high-level train() entry point."""

    def test_train_copy(self, tmp_path):
        path = tmp_path / "copy.trm"
        results = train(
            task="copy",
            n_examples=10,
            output=str(path),
            epochs=2,
            learning_rate=0.01,
            seed=0,
            log_interval=0,
        )

        assert isinstance(results["model"], TRMModel)
        assert len(results["metrics"].losses) == 3
        assert results["val_loss"] is not None
        assert path.exists()

        restored = TRMModel.load(path)
        x = torch.rand(1, 5)
        assert torch.equal(restored.forward(x), results["model"].forward(x))

    def test_train_is_reproducible(self):
        kwargs = dict(task="sequence", n_examples=10, epochs=2, seed=3, log_interval=0)
        a = train(**kwargs)
        b = train(**kwargs)
        assert a["metrics"].losses == b["metrics"].losses

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError):
            train(task="copy", model_config=TRMConfig(input_dim=4, output_dim=4), epochs=1)

    def test_unknown_task(self):
        with pytest.raises(ValueError):
            train(task="sudoku")


class TestCLI:
    """Tests for the command line interface."""

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_train_then_eval(self, tmp_path, capsys):
        path = tmp_path / "model.trm"
        code = main([
            "train", "--task", "copy", "--epochs", "2", "--n-train", "10",
            "--h-cycles", "1", "--l-cycles", "1", "--seed", "0",
            "--output", str(path),
        ])
        assert code == 0
        assert path.exists()

        code = main(["eval", "--model", str(path), "--task", "copy", "--n-eval", "5", "--seed", "1"])
        assert code == 0
        out = capsys.readouterr().out
        assert "Loss:" in out
        assert "Solved:" in out

    def test_train_uses_task_preset(self, tmp_path):
        path = tmp_path / "preset.trm"
        code = main([
            "train", "--task", "copy", "--epochs", "1", "--n-train", "5",
            "--seed", "0", "--output", str(path),
        ])
        assert code == 0
        assert TRMModel.load(path).config == get_preset_config("copy")

    def test_train_flags_override_preset(self, tmp_path):
        path = tmp_path / "override.trm"
        code = main([
            "train", "--task", "copy", "--epochs", "1", "--n-train", "5",
            "--layers", "1", "--h-cycles", "1", "--l-cycles", "3",
            "--output", str(path),
        ])
        assert code == 0
        config = TRMModel.load(path).config
        assert (config.l_layers, config.h_cycles, config.l_cycles) == (1, 1, 3)
        assert config.hidden_dim == get_preset_config("copy").hidden_dim

    def test_eval_input_file(self, tmp_path, capsys):
        model_path = tmp_path / "model.trm"
        TRMModel(TRMConfig(input_dim=3, output_dim=2, hidden_dim=4, latent_dim=2), seed=0).save(model_path)
        input_path = tmp_path / "rows.txt"
        input_path.write_text("0.1 0.2 0.3\n\n1, 0, -1\n")

        assert main(["eval", "-m", str(model_path), "-i", str(input_path)]) == 0
        out = capsys.readouterr().out
        prediction = out.split("Prediction:")[1].strip().splitlines()
        assert len(prediction) == 2
        assert len(prediction[0].split()) == 2

    def test_eval_missing_model(self, tmp_path, capsys):
        assert main(["eval", "--model", str(tmp_path / "missing.trm")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_eval_wrong_input_width(self, tmp_path, capsys):
        model_path = tmp_path / "model.trm"
        TRMModel(TRMConfig(input_dim=3, output_dim=2, hidden_dim=4, latent_dim=2)).save(model_path)
        input_path = tmp_path / "rows.txt"
        input_path.write_text("0.1 0.2\n")

        assert main(["eval", "-m", str(model_path), "-i", str(input_path)]) == 1
        assert "shape" in capsys.readouterr().err

    def test_read_rows(self, tmp_path):
        path = tmp_path / "rows.txt"
        path.write_text("1 2 3\n4,5,6\n\n")
        assert read_rows(str(path)) == [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]
