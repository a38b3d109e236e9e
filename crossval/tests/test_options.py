"""
Copyright (c) 2025. All rights reserved.
"""

"""
Unit tests for training-option parsing.
"""

import math
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from crossval.errors import ConfigurationError
from crossval.options import REQUIRED_KEYS, parse_training_options
from lib.configs import TrainConfig


def base_options():
    return [
        ("valid_perc", 0.2),
        ("init_learn_rate", 1e-3),
        ("learn_drop_factor", 0.5),
        ("max_epochs", 4),
        ("minibatch_size", 8),
        ("valid_patience", 3),
        ("valid_frequency", 5),
    ]


class TestParseTrainingOptions(unittest.TestCase):
    """Test suite for parse_training_options."""

    def test_all_required_keys(self):
        config = parse_training_options(base_options())

        self.assertIsInstance(config, TrainConfig)
        self.assertAlmostEqual(config.valid_perc, 0.2)
        self.assertAlmostEqual(config.init_learn_rate, 1e-3)
        self.assertAlmostEqual(config.learn_drop_factor, 0.5)
        self.assertEqual(config.max_epochs, 4)
        self.assertEqual(config.minibatch_size, 8)
        self.assertEqual(config.valid_patience, 3)
        self.assertEqual(config.valid_frequency, 5)
        # Defaults of the optional keys
        self.assertEqual(config.learn_drop_period, 10)
        self.assertEqual(config.gradient_threshold, 1.0)

    def test_mapping_input(self):
        config = parse_training_options(dict(base_options()))
        self.assertEqual(config.minibatch_size, 8)

    def test_later_duplicate_wins(self):
        options = base_options() + [("minibatch_size", 16), ("max_epochs", 2)]
        config = parse_training_options(options)

        self.assertEqual(config.minibatch_size, 16)
        self.assertEqual(config.max_epochs, 2)

    def test_unknown_keys_ignored(self):
        options = base_options() + [("Plots", "training-progress"), ("Verbose", False)]
        config = parse_training_options(options)
        self.assertEqual(config.valid_frequency, 5)

    def test_missing_key_raises(self):
        for key in REQUIRED_KEYS:
            with self.subTest(missing=key):
                options = [(k, v) for k, v in base_options() if k != key]
                with self.assertRaises(ConfigurationError) as ctx:
                    parse_training_options(options)
                self.assertIn(key, str(ctx.exception))

    def test_missing_key_message_names_kind(self):
        options = [(k, v) for k, v in base_options() if k != "minibatch_size"]
        with self.assertRaises(ConfigurationError) as ctx:
            parse_training_options(options)
        self.assertTrue(str(ctx.exception).startswith("[ConfigurationError]"))

    def test_infinite_patience(self):
        options = base_options() + [("valid_patience", math.inf)]
        config = parse_training_options(options)
        self.assertTrue(math.isinf(config.valid_patience))

    def test_optional_keys(self):
        options = base_options() + [("learn_drop_period", 3), ("gradient_threshold", 0.5)]
        config = parse_training_options(options)

        self.assertEqual(config.learn_drop_period, 3)
        self.assertEqual(config.gradient_threshold, 0.5)

    def test_invalid_values(self):
        invalid = [
            ("valid_perc", 1.5),
            ("valid_perc", -0.1),
            ("init_learn_rate", 0.0),
            ("learn_drop_factor", 2.0),
            ("max_epochs", 0),
            ("minibatch_size", 2.5),
            ("valid_patience", -1),
            ("valid_frequency", "ten"),
            ("gradient_threshold", 0),
            ("learn_drop_period", 0),
        ]
        for key, value in invalid:
            with self.subTest(key=key, value=value):
                with self.assertRaises(ConfigurationError):
                    parse_training_options(base_options() + [(key, value)])

    def test_boolean_rejected(self):
        with self.assertRaises(ConfigurationError):
            parse_training_options(base_options() + [("max_epochs", True)])

    def test_integral_floats_accepted(self):
        config = parse_training_options(base_options() + [("minibatch_size", 32.0)])

        self.assertEqual(config.minibatch_size, 32)
        self.assertIsInstance(config.minibatch_size, int)


if __name__ == "__main__":
    unittest.main()
