#!/usr/bin/env python3
"""Tests for configuration loading and validation."""

from __future__ import annotations

import unittest

from livesync.config import DEFAULT_REFRESH_INTERVAL, DashboardConfig
from livesync.errors import ConfigError


class DashboardConfigTests(unittest.TestCase):
    def test_defaults_are_valid(self) -> None:
        cfg = DashboardConfig().validate()
        self.assertEqual(cfg.refresh_interval, DEFAULT_REFRESH_INTERVAL)
        self.assertIsNone(cfg.request_timeout)

    def test_from_env(self) -> None:
        cfg = DashboardConfig.from_env({
            "PUPERVISOR_URL": "http://sup:9000",
            "PUPERVISOR_REFRESH_INTERVAL": "30",
            "PUPERVISOR_FOLLOW_INTERVAL": "0.5",
            "PUPERVISOR_TIMEOUT": "4",
            "PUPERVISOR_LOG_LEVEL": "INFO",
        })
        self.assertEqual(cfg.base_url, "http://sup:9000")
        self.assertEqual(cfg.refresh_interval, 30.0)
        self.assertEqual(cfg.follow_interval, 0.5)
        self.assertEqual(cfg.request_timeout, 4.0)
        self.assertEqual(cfg.log_level, "INFO")

    def test_empty_env_values_are_ignored(self) -> None:
        cfg = DashboardConfig.from_env({"PUPERVISOR_URL": ""})
        self.assertEqual(cfg.base_url, DashboardConfig().base_url)

    def test_non_numeric_env_value(self) -> None:
        with self.assertRaises(ConfigError):
            DashboardConfig.from_env({"PUPERVISOR_REFRESH_INTERVAL": "soon"})

    def test_overrides_skip_none(self) -> None:
        cfg = DashboardConfig(refresh_interval=10).with_overrides(refresh_interval=None, follow_interval=1)
        self.assertEqual((cfg.refresh_interval, cfg.follow_interval), (10, 1))

    def test_unknown_override(self) -> None:
        with self.assertRaises(ConfigError):
            DashboardConfig().with_overrides(colour="blue")

    def test_validation_errors(self) -> None:
        bad = [
            {"base_url": "localhost:8080"},
            {"refresh_interval": 0},
            {"follow_interval": -1},
            {"refresh_interval": 1, "follow_interval": 2},
            {"request_timeout": 0},
            {"max_lines": 0},
        ]
        for overrides in bad:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ConfigError):
                    DashboardConfig(**overrides).validate()


if __name__ == "__main__":
    unittest.main(verbosity=2)
