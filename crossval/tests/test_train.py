"""
Copyright (c) 2025. All rights reserved.
"""

"""
Unit tests for the training loop and its factories.
"""

import math
import os
import sys
import unittest
import warnings

import torch

sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from lib.activations import get_activation_layer
from lib.loss_functions import get_loss_function
from lib.train import (
    EarlyStopping,
    TrainContext,
    get_lr_scheduler,
    get_optimizer,
    iterate_minibatches,
    predict_classes,
    train_classifier,
)


def make_context(model, epochs=3, minibatch_size=4, lr=0.01, **kwargs):
    optimizer = get_optimizer("adam", lr, model)
    return TrainContext(
        epochs=epochs,
        minibatch_size=minibatch_size,
        optimizer=optimizer,
        lr_scheduler=get_lr_scheduler("piecewise", optimizer, drop_period=1, drop_factor=0.5),
        loss_criterion=get_loss_function("crossentropy"),
        **kwargs,
    )


class TestEarlyStopping(unittest.TestCase):
    """Test suite for EarlyStopping."""

    def test_stops_after_patience(self):
        stopper = EarlyStopping(patience=2)

        self.assertFalse(stopper.step(1.0))
        self.assertFalse(stopper.step(1.0))
        self.assertTrue(stopper.step(1.5))

    def test_improvement_resets(self):
        stopper = EarlyStopping(patience=2)
        stopper.step(1.0)
        stopper.step(1.2)
        self.assertFalse(stopper.step(0.5))
        self.assertEqual(stopper.num_bad_validations, 0)
        self.assertEqual(stopper.best_loss, 0.5)

    def test_infinite_patience(self):
        stopper = EarlyStopping(patience=math.inf)
        for _ in range(100):
            self.assertFalse(stopper.step(1.0))


class TestIterateMinibatches(unittest.TestCase):
    """Test suite for iterate_minibatches."""

    def test_drops_partial_batch(self):
        batches = iterate_minibatches(10, 4, torch.Generator().manual_seed(0))

        self.assertEqual(len(batches), 2)
        self.assertTrue(all(len(batch) == 4 for batch in batches))
        self.assertEqual(len(set(torch.cat(batches).tolist())), 8)

    def test_fewer_samples_than_batch(self):
        batches = iterate_minibatches(3, 8)

        self.assertEqual(len(batches), 1)
        self.assertEqual(sorted(batches[0].tolist()), [0, 1, 2])

    def test_empty(self):
        self.assertEqual(iterate_minibatches(0, 4), [])

    def test_generator_reproducible(self):
        first = iterate_minibatches(20, 5, torch.Generator().manual_seed(3))
        second = iterate_minibatches(20, 5, torch.Generator().manual_seed(3))
        for a, b in zip(first, second):
            self.assertTrue(torch.equal(a, b))


class TestTrainClassifier(unittest.TestCase):
    """Test suite for train_classifier."""

    def setUp(self):
        torch.manual_seed(0)
        self.model = torch.nn.Sequential(torch.nn.Linear(4, 8), torch.nn.ReLU(), torch.nn.Linear(8, 3))
        self.inputs = torch.randn(24, 4)
        self.targets = torch.randint(0, 3, (24,))

    def test_iterations_without_validation(self):
        context = make_context(self.model, epochs=3, minibatch_size=4)
        history = train_classifier(self.model, context, self.inputs, self.targets)

        self.assertEqual(history.iterations, 18)
        self.assertEqual(history.epochs_run, 3)
        self.assertEqual(len(history.train_losses), 18)
        self.assertEqual(history.val_losses, [])
        self.assertFalse(history.stopped_early)
        self.assertFalse(self.model.training)

    def test_validation_frequency(self):
        context = make_context(self.model, epochs=2, minibatch_size=4, valid_frequency=3)
        history = train_classifier(
            self.model, context, self.inputs, self.targets, self.inputs[:6], self.targets[:6]
        )
        self.assertEqual([iteration for iteration, _ in history.val_losses], [3, 6, 9, 12])

    def test_early_stopping(self):
        # A zero learning rate never improves the validation loss
        context = make_context(
            self.model, epochs=50, minibatch_size=4, lr=0.0, valid_frequency=1, valid_patience=2
        )
        history = train_classifier(
            self.model, context, self.inputs, self.targets, self.inputs[:6], self.targets[:6]
        )

        self.assertTrue(history.stopped_early)
        self.assertEqual(history.iterations, 3)
        self.assertEqual(history.epochs_run, 1)

    def test_learning_rate_drops_per_epoch(self):
        context = make_context(self.model, epochs=2, minibatch_size=8, lr=0.1)
        train_classifier(self.model, context, self.inputs, self.targets)
        self.assertAlmostEqual(context.optimizer.param_groups[0]["lr"], 0.025)

    def test_empty_training_set_keeps_learning_rate(self):
        context = make_context(self.model, epochs=3, minibatch_size=4, lr=0.1)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            history = train_classifier(self.model, context, self.inputs[:0], self.targets[:0])

        self.assertEqual(history.iterations, 0)
        self.assertEqual(history.epochs_run, 3)
        self.assertAlmostEqual(context.optimizer.param_groups[0]["lr"], 0.1)
        self.assertFalse([w for w in caught if "lr_scheduler.step" in str(w.message)])

    def test_predict_classes(self):
        predictions = predict_classes(self.model, self.inputs, batch_size=5)

        self.assertEqual(predictions.shape, (24,))
        self.assertTrue(torch.all((predictions >= 0) & (predictions < 3)))
        self.assertEqual(predict_classes(self.model, self.inputs[:0], batch_size=5).numel(), 0)


class TestFactories(unittest.TestCase):
    """Test suite for the optimizer, scheduler, loss and activation factories."""

    def setUp(self):
        self.model = torch.nn.Linear(2, 2)

    def test_optimizers(self):
        self.assertIsInstance(get_optimizer("adam", 0.1, self.model), torch.optim.Adam)
        for name in ("sgdm", "rmsprop", "lbfgs"):
            with self.subTest(optimizer=name):
                with self.assertRaises(ValueError):
                    get_optimizer(name, 0.1, self.model)

    def test_schedulers(self):
        optimizer = get_optimizer("adam", 0.1, self.model)
        self.assertIsInstance(
            get_lr_scheduler("piecewise", optimizer, 10, 0.1), torch.optim.lr_scheduler.StepLR
        )
        for name in ("none", "cosine"):
            with self.subTest(scheduler=name):
                with self.assertRaises(ValueError):
                    get_lr_scheduler(name, optimizer, 10, 0.1)

    def test_losses(self):
        self.assertIsInstance(get_loss_function("crossentropy"), torch.nn.CrossEntropyLoss)
        weighted = get_loss_function("weighted_crossentropy", [1.0, 3.0])
        self.assertTrue(torch.equal(weighted.weight, torch.tensor([1.0, 3.0])))
        with self.assertRaises(ValueError):
            get_loss_function("weighted_crossentropy")
        with self.assertRaises(ValueError):
            get_loss_function("mse")

    def test_activations(self):
        self.assertIsInstance(get_activation_layer("relu"), torch.nn.ReLU)
        self.assertIsInstance(get_activation_layer("leakyrelu"), torch.nn.LeakyReLU)
        self.assertIsInstance(get_activation_layer("elu"), torch.nn.ELU)
        self.assertIsInstance(get_activation_layer("tanh"), torch.nn.Tanh)
        with self.assertRaises(ValueError):
            get_activation_layer("swish")


if __name__ == "__main__":
    unittest.main()
