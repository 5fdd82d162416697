import json
import os
import tempfile
import unittest
from io import StringIO
from unittest.mock import patch

from dev_assistant import config
from dev_assistant.errors import ConfigurationError


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = os.path.join(self.tmp.name, "config.json")
        patcher = patch.dict("os.environ", {config.CONFIG_PATH_ENV: self.path})
        patcher.start()
        self.addCleanup(patcher.stop)

    def write(self, data):
        with open(self.path, "w") as f:
            f.write(data if isinstance(data, str) else json.dumps(data))

    def test_path_from_environment(self):
        self.assertEqual(config.get_config_path(), self.path)

    def test_valid_config(self):
        self.write({"primary_model": "ollama:llama3", "models": {}})
        self.assertEqual(config.load_config()["primary_model"], "ollama:llama3")

    def test_missing_file_without_creation(self):
        with self.assertRaises(ConfigurationError) as cm:
            config.load_config(create_if_missing=False)
        self.assertIn("Configuration file not found", cm.exception.message)

    def test_invalid_json(self):
        self.write("{oops")
        with self.assertRaises(ConfigurationError) as cm:
            config.load_config()
        self.assertIn("Error reading or parsing", cm.exception.message)

    def test_validation(self):
        for data, message in [
            ([], "must contain a JSON object"),
            ({"models": {}}, "No 'primary_model'"),
            ({"primary_model": "openai", "models": []}, "'models' must map"),
            ({"primary_model": "bard"}, "Unsupported provider"),
        ]:
            self.write(data)
            with self.assertRaises(ConfigurationError) as cm:
                config.load_config()
            self.assertIn(message, cm.exception.message)

    @patch("subprocess.run")
    @patch.dict("os.environ", {"EDITOR": "nano"})
    @patch("sys.stdout", new_callable=StringIO)
    def test_edit_existing_config(self, mock_stdout, mock_run):
        self.write({"primary_model": "openai"})
        config.edit_config()
        mock_run.assert_called_once_with(["nano", self.path], check=False)

    @patch("subprocess.run")
    @patch("builtins.input", return_value="y")
    @patch.dict("os.environ", {"EDITOR": "nano"})
    @patch("sys.stdout", new_callable=StringIO)
    def test_edit_creates_the_template(self, mock_stdout, mock_input, mock_run):
        config.edit_config()

        with open(self.path) as f:
            self.assertEqual(json.load(f), config.CONFIG_TEMPLATE)
        mock_run.assert_called_once_with(["nano", self.path], check=False)


if __name__ == "__main__":
    unittest.main()
