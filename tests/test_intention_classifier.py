"""
Tests for IntentionClassifier.
"""

import pytest

from sitegen.services.claude_service import BedrockException
from sitegen.services.intention_classifier import IntentionClassifier, Intention
from sitegen.services.prompts import CLASSIFICATION_PROMPT


class TestIntentionClassifier:
    """Tests for mapping chat messages to agent actions."""

    @pytest.mark.parametrize("reply,expected", [
        ("generate", Intention.GENERATE),
        ("deploy", Intention.DEPLOY),
        ("both", Intention.BOTH),
        ("download", Intention.DOWNLOAD),
        ("edit", Intention.EDIT),
        ("  EDIT\n", Intention.EDIT),
        ('"deploy".', Intention.DEPLOY),
    ])
    def test_valid_labels(self, mocker, reply, expected):
        claude = mocker.MagicMock()
        claude.generate_text.return_value = reply

        assert IntentionClassifier(claude).classify("some message") == expected

    def test_uses_classification_prompt_at_zero_temperature(self, mocker):
        claude = mocker.MagicMock()
        claude.generate_text.return_value = "download"

        IntentionClassifier(claude).classify("give me the file")

        args, kwargs = claude.generate_text.call_args
        assert args[0] == CLASSIFICATION_PROMPT
        assert kwargs["prompt"] == "give me the file"
        assert kwargs["temperature"] == 0.0

    def test_unknown_label_falls_back_to_generate(self, mocker):
        claude = mocker.MagicMock()
        claude.generate_text.return_value = "I think the user wants to deploy"

        assert IntentionClassifier(claude).classify("deploy it") == Intention.GENERATE

    def test_gateway_failure_falls_back_to_generate(self, mocker):
        claude = mocker.MagicMock()
        claude.generate_text.side_effect = BedrockException("Rate limit exceeded: slow down")

        assert IntentionClassifier(claude).classify("deploy it") == Intention.GENERATE

    def test_empty_reply_falls_back_to_generate(self, mocker):
        claude = mocker.MagicMock()
        claude.generate_text.return_value = ""

        assert IntentionClassifier(claude).classify("hello") == Intention.GENERATE
