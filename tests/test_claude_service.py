"""
Tests for ClaudeService.
"""

import pytest
import json
from botocore.exceptions import ClientError

from sitegen.services.claude_service import ClaudeService, BedrockException, normalize_messages


def _bedrock_response(mocker, text):
    response = {'body': mocker.MagicMock()}
    response['body'].read.return_value = json.dumps({'content': [{'type': 'text', 'text': text}]})
    return response


def _stream_event(payload):
    return {'chunk': {'bytes': json.dumps(payload).encode('utf-8')}}


class TestClaudeService:
    """Tests for the Bedrock gateway."""

    def test_generate_text_success(self, mocker):
        """Test successful generation."""
        mock_client = mocker.MagicMock()
        mock_client.invoke_model.return_value = _bedrock_response(mocker, "```html\n<html></html>\n```")
        mocker.patch('boto3.client', return_value=mock_client)

        service = ClaudeService()
        result = service.generate_text("system", prompt="Bakery site")

        assert result == "```html\n<html></html>\n```"

        body = json.loads(mock_client.invoke_model.call_args.kwargs['body'])
        assert body['system'] == "system"
        assert body['messages'] == [{"role": "user", "content": "Bakery site"}]
        assert body['anthropic_version'] == "bedrock-2023-05-31"

    def test_generate_text_overrides(self, mocker):
        """Test temperature and max_tokens overrides reach the request."""
        mock_client = mocker.MagicMock()
        mock_client.invoke_model.return_value = _bedrock_response(mocker, "edit")
        mocker.patch('boto3.client', return_value=mock_client)

        ClaudeService().generate_text("classify", prompt="change the color", temperature=0.0, max_tokens=10)

        body = json.loads(mock_client.invoke_model.call_args.kwargs['body'])
        assert body['temperature'] == 0.0
        assert body['max_tokens'] == 10

    def test_generate_text_retries_transient_error(self, mocker):
        """Test a transient failure is retried once."""
        mock_client = mocker.MagicMock()
        mock_client.invoke_model.side_effect = [
            Exception("connection reset"),
            _bedrock_response(mocker, "<html></html>")
        ]
        mocker.patch('boto3.client', return_value=mock_client)

        result = ClaudeService().generate_text("system", prompt="site")

        assert result == "<html></html>"
        assert mock_client.invoke_model.call_count == 2

    def test_generate_text_max_retries_exceeded(self, mocker):
        """Test failure after all retries."""
        mock_client = mocker.MagicMock()
        mock_client.invoke_model.side_effect = Exception("connection reset")
        mocker.patch('boto3.client', return_value=mock_client)

        with pytest.raises(BedrockException, match="Bedrock call failed"):
            ClaudeService().generate_text("system", prompt="site")

    def test_empty_content_raises(self, mocker):
        """Test an empty content list is an error, not an empty site."""
        mock_client = mocker.MagicMock()
        response = {'body': mocker.MagicMock()}
        response['body'].read.return_value = json.dumps({'content': []})
        mock_client.invoke_model.return_value = response
        mocker.patch('boto3.client', return_value=mock_client)

        with pytest.raises(BedrockException, match="Empty response"):
            ClaudeService().generate_text("system", prompt="site")

    def test_bedrock_rate_limit_error(self, mocker):
        """Test handling of rate limit errors (not retried)."""
        mock_client = mocker.MagicMock()
        mock_client.invoke_model.side_effect = ClientError(
            {'Error': {'Code': 'ThrottlingException', 'Message': 'Rate exceeded'}},
            'InvokeModel'
        )
        mocker.patch('boto3.client', return_value=mock_client)

        with pytest.raises(BedrockException, match="Rate limit exceeded"):
            ClaudeService().generate_text("system", prompt="site")

        assert mock_client.invoke_model.call_count == 1

    def test_bedrock_validation_error(self, mocker):
        """Test handling of validation errors."""
        mock_client = mocker.MagicMock()
        mock_client.invoke_model.side_effect = ClientError(
            {'Error': {'Code': 'ValidationException', 'Message': 'Invalid request'}},
            'InvokeModel'
        )
        mocker.patch('boto3.client', return_value=mock_client)

        with pytest.raises(BedrockException, match="Invalid request"):
            ClaudeService().generate_text("system", prompt="site")

    def test_requires_prompt_or_messages(self, mocker):
        mocker.patch('boto3.client', return_value=mocker.MagicMock())

        with pytest.raises(ValueError):
            ClaudeService().generate_text("system")

    def test_stream_text_yields_deltas(self, mocker):
        """Test streaming only yields text deltas, in order."""
        mock_client = mocker.MagicMock()
        mock_client.invoke_model_with_response_stream.return_value = {
            'body': [
                _stream_event({'type': 'message_start'}),
                _stream_event({'type': 'content_block_delta', 'delta': {'text': '<html>'}}),
                {'other': 'event'},
                _stream_event({'type': 'content_block_delta', 'delta': {'text': '</html>'}}),
                _stream_event({'type': 'message_stop'}),
            ]
        }
        mocker.patch('boto3.client', return_value=mock_client)

        chunks = list(ClaudeService().stream_text("system", messages=[{"role": "user", "content": "site"}]))

        assert chunks == ['<html>', '</html>']

    def test_stream_text_stops_at_time_budget(self, mocker):
        """Slow chunks that each arrive within the read timeout still hit the overall budget."""
        mock_client = mocker.MagicMock()
        mock_client.invoke_model_with_response_stream.return_value = {
            'body': [
                _stream_event({'type': 'content_block_delta', 'delta': {'text': f'<p>{n}</p>'}})
                for n in range(10)
            ]
        }
        mocker.patch('boto3.client', return_value=mock_client)
        mock_time = mocker.patch('sitegen.services.claude_service.time')
        mock_time.monotonic.side_effect = [0.0, 10.0, 20.0, 35.0, 60.0]

        service = ClaudeService()
        service.timeout = 30
        chunks = []
        with pytest.raises(BedrockException, match="time budget"):
            for text in service.stream_text("system", prompt="site"):
                chunks.append(text)

        assert chunks == ['<p>0</p>', '<p>1</p>']

    def test_stream_text_client_error(self, mocker):
        mock_client = mocker.MagicMock()
        mock_client.invoke_model_with_response_stream.side_effect = ClientError(
            {'Error': {'Code': 'ThrottlingException', 'Message': 'Rate exceeded'}},
            'InvokeModelWithResponseStream'
        )
        mocker.patch('boto3.client', return_value=mock_client)

        with pytest.raises(BedrockException, match="Rate limit exceeded"):
            list(ClaudeService().stream_text("system", prompt="site"))


class TestNormalizeMessages:
    """Tests for converting chat-UI messages to Claude turns."""

    def test_parts_and_content(self):
        messages = [
            {"role": "user", "parts": [{"type": "text", "text": "Bakery "}, {"type": "text", "text": "site"}]},
            {"role": "assistant", "content": "<html></html>"},
        ]
        assert normalize_messages(messages) == [
            {"role": "user", "content": "Bakery site"},
            {"role": "assistant", "content": "<html></html>"},
        ]

    def test_drops_system_and_leading_assistant(self):
        messages = [
            {"role": "system", "content": "ignored"},
            {"role": "assistant", "content": "Hi!"},
            {"role": "user", "content": "Make a site"},
        ]
        assert normalize_messages(messages) == [{"role": "user", "content": "Make a site"}]

    def test_merges_consecutive_turns(self):
        messages = [
            {"role": "user", "content": "first"},
            {"role": "user", "content": "second"},
        ]
        assert normalize_messages(messages) == [{"role": "user", "content": "first\n\nsecond"}]
