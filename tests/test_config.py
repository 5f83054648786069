import pathlib
import sys
import tempfile
import unittest

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from hrvsense.config import HrvSenseConfig, config_from_mapping, dump_config, load_config
from hrvsense.core.models import HRVWindow


class RuntimeConfigTest(unittest.TestCase):
    def test_defaults(self):
        cfg = HrvSenseConfig()
        self.assertEqual(cfg.history_capacity, 300)
        self.assertEqual(cfg.hrv_min_samples, 5)
        self.assertEqual(cfg.max_reconnect_attempts, 5)
        self.assertEqual(cfg.reconnect_base_delay_s, 2.0)
        self.assertIs(cfg.hrv_window, HRVWindow.FIVE_MINUTES)

    def test_nested_blocks_are_flattened(self):
        payload = {
            "session": {"history_capacity": 120},
            "hrv": {"default_hrv_window": "2min"},
            "reconnect": {"max_reconnect_attempts": 3, "reconnect_base_delay_s": 1.5},
            "logging": {"log_level": "debug"},
            "unknown_key": 42,
        }
        cfg = config_from_mapping(payload)
        self.assertEqual(cfg.history_capacity, 120)
        self.assertIs(cfg.hrv_window, HRVWindow.TWO_MINUTES)
        self.assertEqual(cfg.max_reconnect_attempts, 3)
        self.assertEqual(cfg.reconnect_base_delay_s, 1.5)
        self.assertEqual(cfg.log_level, "DEBUG")

    def test_sanitized_clamps_values(self):
        cfg = HrvSenseConfig(
            history_capacity=0,
            max_reconnect_attempts=-2,
            reconnect_base_delay_s=-1.0,
            default_hrv_window="not-a-window",
        ).sanitized()
        self.assertEqual(cfg.history_capacity, 1)
        self.assertEqual(cfg.max_reconnect_attempts, 0)
        self.assertEqual(cfg.reconnect_base_delay_s, 0.0)
        self.assertEqual(cfg.default_hrv_window, "5 Minutes")

    def test_missing_file_yields_defaults(self):
        self.assertEqual(load_config("/nonexistent/hrvsense.yaml"), HrvSenseConfig())
        self.assertEqual(load_config(None), HrvSenseConfig())

    def test_dump_then_load(self):
        cfg = HrvSenseConfig(history_capacity=600, default_hrv_window="10min", stream_restart_delay_s=0.5)
        with tempfile.TemporaryDirectory() as tmp:
            path = pathlib.Path(tmp) / "cfg" / "hrvsense.yaml"
            dump_config(cfg.sanitized(), path)
            loaded = load_config(path)
        self.assertEqual(loaded.history_capacity, 600)
        self.assertIs(loaded.hrv_window, HRVWindow.TEN_MINUTES)
        self.assertEqual(loaded.stream_restart_delay_s, 0.5)

    def test_non_mapping_document_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = pathlib.Path(tmp) / "bad.yaml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_config(path)

    def test_repository_default_config_loads(self):
        cfg = load_config(ROOT / "config" / "hrvsense.yaml")
        self.assertEqual(cfg.history_capacity, 300)
        self.assertIs(cfg.hrv_window, HRVWindow.FIVE_MINUTES)


class HrvWindowParseTest(unittest.TestCase):
    def test_accepts_labels_keys_and_seconds(self):
        self.assertIs(HRVWindow.parse("1 Minute"), HRVWindow.ONE_MINUTE)
        self.assertIs(HRVWindow.parse("2m"), HRVWindow.TWO_MINUTES)
        self.assertIs(HRVWindow.parse("10min"), HRVWindow.TEN_MINUTES)
        self.assertIs(HRVWindow.parse(300), HRVWindow.FIVE_MINUTES)
        self.assertIs(HRVWindow.parse(HRVWindow.ONE_MINUTE), HRVWindow.ONE_MINUTE)

    def test_rejects_unknown(self):
        for value in ("7min", 45, "", None, True):
            with self.assertRaises(ValueError):
                HRVWindow.parse(value)

    def test_descriptions(self):
        self.assertEqual(HRVWindow.FIVE_MINUTES.description, "Short-term (5 min) - Research standard")
        self.assertEqual(len({w.description for w in HRVWindow}), len(HRVWindow))


if __name__ == "__main__":
    unittest.main()
