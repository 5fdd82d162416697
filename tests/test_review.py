import unittest
from unittest.mock import AsyncMock, patch

from dev_assistant.ai.assistants import review
from dev_assistant.errors import SubprocessError


class TestReviewAssistant(unittest.TestCase):

    def setUp(self):
        self.mock_config = {"primary_model": "ollama"}

    @patch("dev_assistant.ai.assistants.review.copy_to_clipboard")
    @patch("builtins.input", return_value="")
    @patch("dev_assistant.ai.assistants.review.Console")
    @patch("dev_assistant.ai.assistants.review.create_client")
    @patch("dev_assistant.ai.assistants.review.get_branch_diff", return_value="- old\n+ new")
    def test_review_and_copy(self, mock_diff, mock_create_client, MockConsole, mock_input, mock_copy):
        client = mock_create_client.return_value
        client.generate_text = AsyncMock(return_value="## Review\n\nLooks good.")

        review.review(self.mock_config)

        request = client.generate_text.call_args.args[0]
        self.assertIn("- old\n+ new", request.prompt)
        self.assertIn("Markdown", request.prompt)
        mock_input.assert_called_once_with("Do you want to copy the analysis to the clipboard? [Yn] ")
        mock_copy.assert_called_once_with("## Review\n\nLooks good.")

    @patch("dev_assistant.ai.assistants.review.copy_to_clipboard")
    @patch("builtins.input", return_value="n")
    @patch("dev_assistant.ai.assistants.review.Console")
    @patch("dev_assistant.ai.assistants.review.create_client")
    @patch("dev_assistant.ai.assistants.review.get_branch_diff", return_value="+ new")
    def test_review_without_copy(self, mock_diff, mock_create_client, MockConsole, mock_input, mock_copy):
        mock_create_client.return_value.generate_text = AsyncMock(return_value="ok")
        review.review(self.mock_config)
        mock_copy.assert_not_called()

    @patch("dev_assistant.ai.assistants.review.copy_to_clipboard", side_effect=SubprocessError("no xclip"))
    @patch("builtins.input", return_value="y")
    @patch("dev_assistant.ai.assistants.review.Console")
    @patch("dev_assistant.ai.assistants.review.create_client")
    @patch("dev_assistant.ai.assistants.review.get_branch_diff", return_value="+ new")
    def test_clipboard_failure_is_reported(self, mock_diff, mock_create_client, MockConsole, mock_input, mock_copy):
        mock_create_client.return_value.generate_text = AsyncMock(return_value="ok")

        review.review(self.mock_config)

        MockConsole.return_value.print.assert_called_with(
            "[red]Error: Unable to copy to clipboard. no xclip[/]"
        )

    @patch("dev_assistant.ai.assistants.review.Console")
    @patch("dev_assistant.ai.assistants.review.create_client")
    @patch("dev_assistant.ai.assistants.review.get_branch_diff", return_value="")
    def test_nothing_to_review(self, mock_diff, mock_create_client, MockConsole):
        review.review(self.mock_config)
        mock_create_client.assert_not_called()


if __name__ == "__main__":
    unittest.main()
