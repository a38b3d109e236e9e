"""
Copyright (c) 2025. All rights reserved.
"""

"""
Unit tests for the fold data model, batch assembly and fold loading.
"""

import os
import sys
import tempfile
import unittest

import numpy as np

sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from crossval.data import (
    FoldData,
    Sample,
    assemble_batch,
    derive_num_classes,
    fold_names,
    load_folds,
    validate_datasets,
)
from crossval.errors import ConfigurationError, LabelSpaceError, ShapeError


def make_fold(labels, shape=(4, 3, 2), offset=0.0):
    arrays = [np.full(shape, offset + i, dtype=np.float32) for i in range(len(labels))]
    return FoldData.from_arrays(arrays, labels)


class TestSample(unittest.TestCase):
    """Test suite for Sample."""

    def test_two_dimensional_becomes_single_channel(self):
        sample = Sample(np.zeros((5, 7)), 2)

        self.assertEqual(sample.shape, (5, 7, 1))
        self.assertEqual(sample.data.dtype, np.float32)
        self.assertEqual(sample.label, 2)

    def test_data_is_read_only_copy(self):
        source = np.ones((2, 2, 3))
        sample = Sample(source, 1)
        source[0, 0, 0] = 5.0

        self.assertEqual(sample.data[0, 0, 0], 1.0)
        with self.assertRaises(ValueError):
            sample.data[0, 0, 0] = 2.0

    def test_invalid_rank(self):
        with self.assertRaises(ShapeError):
            Sample(np.zeros(4), 1)

    def test_fractional_label_rejected(self):
        with self.assertRaises(LabelSpaceError):
            Sample(np.zeros((2, 2)), 2.7)

    def test_integral_float_label(self):
        sample = Sample(np.zeros((2, 2)), np.float64(3.0))
        self.assertEqual(sample.label, 3)
        self.assertIsInstance(sample.label, int)


class TestAssembleBatch(unittest.TestCase):
    """Test suite for assemble_batch."""

    def test_stacks_in_order(self):
        fold = make_fold([1, 2, 3])
        inputs, labels = assemble_batch(fold.samples, (4, 3, 2))

        self.assertEqual(inputs.shape, (3, 4, 3, 2))
        self.assertEqual(inputs.dtype, np.float32)
        np.testing.assert_array_equal(labels, [1, 2, 3])
        for i in range(3):
            np.testing.assert_array_equal(inputs[i], fold.samples[i].data)

    def test_infers_shape(self):
        inputs, _ = assemble_batch(make_fold([1, 1]).samples)
        self.assertEqual(inputs.shape, (2, 4, 3, 2))

    def test_shape_mismatch(self):
        samples = make_fold([1, 2]).samples + [Sample(np.zeros((4, 3, 1)), 1)]
        with self.assertRaises(ShapeError):
            assemble_batch(samples)

    def test_declared_shape_mismatch(self):
        with self.assertRaises(ShapeError):
            assemble_batch(make_fold([1]).samples, (4, 3, 3))

    def test_empty_with_declared_shape(self):
        inputs, labels = assemble_batch([], (4, 3, 2))

        self.assertEqual(inputs.shape, (0, 4, 3, 2))
        self.assertEqual(labels.shape, (0,))

    def test_empty_without_shape(self):
        with self.assertRaises(ShapeError):
            assemble_batch([])


class TestDatasetValidation(unittest.TestCase):
    """Test suite for fold name, class space and dataset validation."""

    def test_fold_names_in_order(self):
        train = {"B": make_fold([1]), "A": make_fold([1])}
        test = {"B": make_fold([1]), "A": make_fold([1])}
        self.assertEqual(fold_names(train, test), ["B", "A"])

    def test_fold_names_mismatch(self):
        with self.assertRaises(ConfigurationError):
            fold_names({"A": make_fold([1])}, {"B": make_fold([1])})

    def test_fold_names_empty(self):
        with self.assertRaises(ConfigurationError):
            fold_names({}, {})

    def test_num_classes_from_first_fold(self):
        self.assertEqual(derive_num_classes(make_fold([1, 2]), make_fold([3, 1])), 3)

    def test_validate_datasets(self):
        train = {"A": make_fold([1, 2, 3]), "B": make_fold([3, 2])}
        test = {"A": make_fold([1]), "B": make_fold([2])}
        names, shape, num_classes = validate_datasets(train, test)

        self.assertEqual(names, ["A", "B"])
        self.assertEqual(shape, (4, 3, 2))
        self.assertEqual(num_classes, 3)

    def test_shape_error_names_fold(self):
        train = {"A": make_fold([1, 2]), "B": make_fold([1, 2], shape=(4, 4, 2))}
        test = {"A": make_fold([1]), "B": make_fold([1])}
        with self.assertRaises(ShapeError) as ctx:
            validate_datasets(train, test)

        self.assertEqual(ctx.exception.fold, "B")
        self.assertIn("fold 'B'", str(ctx.exception))

    def test_label_outside_class_space(self):
        # The class space comes from fold A, fold B carries an unseen label
        train = {"A": make_fold([1, 2]), "B": make_fold([1, 3])}
        test = {"A": make_fold([2]), "B": make_fold([1])}
        with self.assertRaises(LabelSpaceError) as ctx:
            validate_datasets(train, test)
        self.assertEqual(ctx.exception.fold, "B")

    def test_non_positive_label(self):
        train = {"A": make_fold([1, 0])}
        test = {"A": make_fold([1])}
        with self.assertRaises(LabelSpaceError):
            validate_datasets(train, test)


class TestLoadFolds(unittest.TestCase):
    """Test suite for load_folds."""

    def test_load_sorted_folds(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            for name, num_train in (("fold2", 3), ("fold1", 4)):
                np.savez(
                    os.path.join(temp_dir, f"{name}.npz"),
                    train_data=np.zeros((num_train, 5, 6)),
                    train_labels=np.arange(num_train) % 2 + 1,
                    test_data=np.zeros((2, 5, 6)),
                    test_labels=np.array([1, 2]),
                )
            train, test = load_folds(temp_dir)

        self.assertEqual(list(train.keys()), ["fold1", "fold2"])
        self.assertEqual(len(train["fold1"]), 4)
        self.assertEqual(len(test["fold2"]), 2)
        self.assertEqual(train["fold1"].samples[0].shape, (5, 6, 1))

    def test_missing_array(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            np.savez(os.path.join(temp_dir, "A.npz"), train_data=np.zeros((1, 2, 2)))
            with self.assertRaises(ConfigurationError):
                load_folds(temp_dir)

    def test_missing_directory(self):
        with self.assertRaises(FileNotFoundError):
            load_folds("/nonexistent/fold/dir")

    def test_no_fold_files(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(ConfigurationError):
                load_folds(temp_dir)


if __name__ == "__main__":
    unittest.main()
