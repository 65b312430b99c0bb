from __future__ import annotations

import json
import tempfile
from pathlib import Path
from unittest import TestCase

import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from decomp_viewer.config import (  # noqa: E402
    DEFAULT_ENGINE_OPTIONS,
    ConfigError,
    ViewerConfig,
    load_config,
    parse_option_overrides,
)


class LoadConfigTests(TestCase):
    def setUp(self) -> None:
        self.tempdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tempdir.cleanup)
        self.tmp_path = Path(self.tempdir.name)

    def _write(self, payload) -> Path:
        path = self.tmp_path / "viewer.json"
        path.write_text(json.dumps(payload))
        return path

    def test_defaults(self) -> None:
        config = load_config(environ={})

        self.assertEqual(ViewerConfig(), config)
        self.assertEqual(DEFAULT_ENGINE_OPTIONS, config.engine_options)
        self.assertEqual(".java", config.extension)

    def test_file_values_are_merged(self) -> None:
        path = self._write(
            {
                "engine_jar": "tools/fernflower.jar",
                "engine_options": {"ind": "\t", "rsy": 1},
                "poll_interval_ms": 50,
            }
        )

        config = load_config(path, environ={})

        self.assertEqual((self.tmp_path / "tools" / "fernflower.jar").resolve(), config.engine_jar)
        self.assertEqual("\t", config.engine_options["ind"])
        self.assertEqual("1", config.engine_options["rsy"])
        self.assertEqual("1", config.engine_options["din"])
        self.assertEqual(50, config.poll_interval_ms)

    def test_environment_overrides_file(self) -> None:
        path = self._write({"engine_jar": "a.jar"})

        config = load_config(path, environ={"DECOMP_VIEWER_ENGINE_JAR": "/opt/ff.jar"})

        self.assertEqual(Path("/opt/ff.jar"), config.engine_jar)

    def test_config_path_from_environment(self) -> None:
        path = self._write({"extension": ".jav"})

        config = load_config(environ={"DECOMP_VIEWER_CONFIG": str(path)})

        self.assertEqual(".jav", config.extension)

    def test_invalid_json(self) -> None:
        path = self.tmp_path / "broken.json"
        path.write_text("{")

        with self.assertRaises(ConfigError):
            load_config(path, environ={})

    def test_invalid_types(self) -> None:
        for payload in (
            [],
            {"engine_options": "x"},
            {"poll_interval_ms": 0},
            {"poll_interval_ms": True},
            {"delimiter": ""},
            {"java": 3},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ConfigError):
                    load_config(self._write(payload), environ={})

    def test_missing_file(self) -> None:
        with self.assertRaises(ConfigError):
            load_config(self.tmp_path / "missing.json", environ={})


class OptionOverrideTests(TestCase):
    def test_parses_pairs(self) -> None:
        self.assertEqual(
            {"ind": "  ", "dgs": "0"},
            parse_option_overrides(["ind=  ", "-dgs=0"]),
        )

    def test_rejects_missing_separator(self) -> None:
        with self.assertRaises(ConfigError):
            parse_option_overrides(["dgs"])

    def test_with_options_keeps_defaults(self) -> None:
        config = ViewerConfig().with_options({"dgs": "0"})

        self.assertEqual("0", config.engine_options["dgs"])
        self.assertEqual("1", config.engine_options["hdc"])
        self.assertEqual("1", DEFAULT_ENGINE_OPTIONS["dgs"])
