import unittest
from io import StringIO
from unittest.mock import AsyncMock, MagicMock, patch

from dev_assistant.ai.assistants import sh
from dev_assistant.ai.assistants.sh import CommandSuggestion
from dev_assistant.ai.llm import CompletionRequest
from dev_assistant.errors import UserCancelled


def printed(console):
    return "\n".join(str(call.args[0]) for call in console.print.call_args_list if call.args)


class TestSuggestShellCommand(unittest.IsolatedAsyncioTestCase):

    async def test_valid_json_is_parsed(self):
        client = MagicMock()
        client.generate_text = AsyncMock(
            return_value='{"command": "ls -l", "risk_assessment": 0, '
            '"explanation": "list files", "disclaimer": ""}'
        )

        result = await sh._suggest_shell_command(client, "list all files")

        self.assertEqual(result, CommandSuggestion("ls -l", 0, "list files", ""))
        request = client.generate_text.call_args.args[0]
        self.assertIsInstance(request, CompletionRequest)
        self.assertTrue(request.prompt.endswith("list all files"))
        self.assertIn("risk_assessment", request.prompt)
        self.assertTrue(client.generate_text.call_args.kwargs["confirm"])

    async def test_declined_prompt_is_raised(self):
        client = MagicMock()
        client.generate_text = AsyncMock(side_effect=UserCancelled())

        with self.assertRaises(UserCancelled):
            await sh._suggest_shell_command(client, "list all files")


class TestParseSuggestion(unittest.TestCase):

    def test_json_code_block(self):
        response = (
            "Sure:\n```json\n"
            '{"command": "rm -rf build", "risk_assessment": 1, '
            '"explanation": "deletes build", "disclaimer": "Files are gone for good."}\n```'
        )
        result = sh._parse_suggestion(response)
        self.assertEqual(result.command, "rm -rf build")
        self.assertEqual(result.risk_assessment, 1)

    def test_invalid_responses(self):
        for response in [
            '{"command": "ls -l", "risk_assessment": 0, ',
            '{"command": "ls"}',
            '{"cmd": "ls", "risk_assessment": 0, "explanation": "", "disclaimer": ""}',
            '{"command": ["ls"], "risk_assessment": 0, "explanation": "", "disclaimer": ""}',
            "[]",
        ]:
            result = sh._parse_suggestion(response)
            self.assertEqual(result.command, "")
            self.assertEqual(result.explanation, "Error: The AI failed to return a valid command.")


class TestShAssistant(unittest.TestCase):

    def setUp(self):
        self.mock_config = {"primary_model": "ollama"}

    @patch("dev_assistant.ai.assistants.sh.subprocess.run")
    @patch("dev_assistant.ai.assistants.sh.ask_yes_no", return_value=True)
    @patch("dev_assistant.ai.assistants.sh.Console")
    @patch("dev_assistant.ai.assistants.sh._suggest_shell_command", new_callable=AsyncMock)
    @patch("dev_assistant.ai.assistants.sh.create_client")
    def test_user_confirms_execution(
        self, mock_create_client, mock_suggest, MockConsole, mock_ask, mock_run
    ):
        mock_suggest.return_value = CommandSuggestion("echo 'hello'", 0, "prints hello", "")

        sh.sh(self.mock_config, "say hello", model="openai", silent=True)

        mock_create_client.assert_called_once_with(self.mock_config, model="openai", silent=True)
        mock_suggest.assert_called_once_with(mock_create_client.return_value, "say hello")
        output = printed(MockConsole.return_value)
        self.assertIn("Suggested command:\n  echo 'hello'", output)
        self.assertIn("Explanation:\n  prints hello", output)
        self.assertNotIn("Disclaimer", output)
        mock_run.assert_called_once_with("echo 'hello'", shell=True, check=False)

    @patch("dev_assistant.ai.assistants.sh.subprocess.run")
    @patch("dev_assistant.ai.assistants.sh.ask_yes_no", return_value=False)
    @patch("dev_assistant.ai.assistants.sh.Console")
    @patch("dev_assistant.ai.assistants.sh._suggest_shell_command", new_callable=AsyncMock)
    @patch("dev_assistant.ai.assistants.sh.create_client")
    def test_user_denies_execution(
        self, mock_create_client, mock_suggest, MockConsole, mock_ask, mock_run
    ):
        mock_suggest.return_value = CommandSuggestion(
            "rm -rf /tmp/x", 1, "deletes /tmp/x", "This cannot be undone."
        )

        sh.sh(self.mock_config, "clean up")

        self.assertIn("This cannot be undone.", printed(MockConsole.return_value))
        mock_ask.assert_called_once_with("Do you want to run this command? [y/N] ")
        mock_run.assert_not_called()

    @patch("sys.stderr", new_callable=StringIO)
    @patch("dev_assistant.ai.assistants.sh.subprocess.run")
    @patch("dev_assistant.ai.assistants.sh._suggest_shell_command", new_callable=AsyncMock)
    @patch("dev_assistant.ai.assistants.sh.create_client")
    def test_no_command_exits_with_error(
        self, mock_create_client, mock_suggest, mock_run, mock_stderr
    ):
        mock_suggest.return_value = sh.INVALID_SUGGESTION

        with self.assertRaises(SystemExit) as cm:
            sh.sh(self.mock_config, "make me a sandwich")

        self.assertEqual(cm.exception.code, 1)
        self.assertIn("Could not generate a command", mock_stderr.getvalue())
        mock_run.assert_not_called()


if __name__ == "__main__":
    unittest.main()
