import unittest
from unittest.mock import patch, mock_open
from usb_drive_detector.core.config import load_config, DEFAULT_CONFIG


class TestConfig(unittest.TestCase):
    @patch("builtins.open", new_callable=mock_open, read_data="detector:\n  polling_interval_ms: 250\n")
    @patch("pathlib.Path.exists", return_value=True)
    def test_load_custom_config(self, mock_exists, mock_file):
        config = load_config("dummy_config.yaml")
        self.assertEqual(config['detector']['polling_interval_ms'], 250)
        # Ensure defaults are preserved for missing keys
        self.assertEqual(config['detector']['shutdown_timeout_seconds'], 5.0)
        self.assertEqual(config['app']['name'], "USB Drive Detector")

    @patch("builtins.open", new_callable=mock_open, read_data="detector:\n  polling_interval_ms: 250\n")
    @patch("pathlib.Path.exists", return_value=True)
    def test_merge_does_not_mutate_defaults(self, mock_exists, mock_file):
        load_config("dummy_config.yaml")
        self.assertEqual(DEFAULT_CONFIG['detector']['polling_interval_ms'], 5000)

    @patch("pathlib.Path.exists", return_value=False)
    def test_load_defaults_missing_file(self, mock_exists):
        config = load_config("missing.yaml")
        self.assertEqual(config, DEFAULT_CONFIG)

    @patch("builtins.open", new_callable=mock_open, read_data="invalid_yaml: [")
    @patch("pathlib.Path.exists", return_value=True)
    def test_load_invalid_yaml(self, mock_exists, mock_file):
        config = load_config("bad.yaml")
        self.assertEqual(config, DEFAULT_CONFIG)

    @patch("builtins.open", new_callable=mock_open, read_data="- just\n- a list\n")
    @patch("pathlib.Path.exists", return_value=True)
    def test_load_non_mapping(self, mock_exists, mock_file):
        self.assertEqual(load_config("list.yaml"), DEFAULT_CONFIG)

    def test_no_path(self):
        self.assertEqual(load_config(None), DEFAULT_CONFIG)


if __name__ == "__main__":
    unittest.main()
