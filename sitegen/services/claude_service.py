"""
Claude service: the language-model gateway, via AWS Bedrock.
"""

import json
import time
from typing import List, Dict, Any, Optional, Iterator
import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, BotoCoreError
from config import get_settings
from sitegen.utils.logger import get_logger

logger = get_logger(__name__)


class BedrockException(Exception):
    """Custom exception for AWS Bedrock errors."""
    pass


class ClaudeService:
    """Service for generating and editing sites with Claude via AWS Bedrock."""

    def __init__(self):
        """Initialize Claude service."""
        self.settings = get_settings()
        self.timeout = self.settings.generation_timeout_seconds
        self.client = boto3.client(
            service_name='bedrock-runtime',
            region_name=self.settings.aws_region,
            aws_access_key_id=self.settings.aws_access_key_id,
            aws_secret_access_key=self.settings.aws_secret_access_key,
            config=Config(
                connect_timeout=5,
                read_timeout=self.timeout,
                retries={"max_attempts": 1}
            )
        )
        self.model_id = self.settings.claude_model_id
        self.max_retries = 2

    def generate_text(
        self,
        system_prompt: str,
        prompt: Optional[str] = None,
        messages: Optional[List[Dict[str, Any]]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Generate a complete response.

        Args:
            system_prompt: Fixed instructions for the model
            prompt: Single user prompt (used when messages is not given)
            messages: Chat history, oldest first
            temperature: Override for the configured temperature
            max_tokens: Override for the configured token limit

        Returns:
            str: Model output text

        Raises:
            BedrockException: If the call fails or exceeds the time budget
        """
        body = self._build_body(system_prompt, prompt, messages, temperature, max_tokens)
        deadline = time.monotonic() + self.timeout

        for attempt in range(self.max_retries):
            try:
                return self._call_bedrock(body)
            except BedrockException as e:
                retryable = "Rate limit" not in str(e) and "Invalid request" not in str(e)
                if attempt < self.max_retries - 1 and retryable and time.monotonic() < deadline:
                    logger.warning(f"Claude error (attempt {attempt + 1}/{self.max_retries}): {e}")
                    continue
                raise

    def stream_text(
        self,
        system_prompt: str,
        prompt: Optional[str] = None,
        messages: Optional[List[Dict[str, Any]]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Iterator[str]:
        """
        Stream the response token by token.

        Args:
            system_prompt: Fixed instructions for the model
            prompt: Single user prompt (used when messages is not given)
            messages: Chat history, oldest first
            temperature: Override for the configured temperature
            max_tokens: Override for the configured token limit

        Yields:
            str: Text deltas in order

        Raises:
            BedrockException: If the stream cannot be opened, breaks, or
                runs past the time budget
        """
        body = self._build_body(system_prompt, prompt, messages, temperature, max_tokens)
        deadline = time.monotonic() + self.timeout

        try:
            response = self.client.invoke_model_with_response_stream(
                modelId=self.model_id,
                body=json.dumps(body)
            )
            for event in response['body']:
                # read_timeout only bounds the gap between chunks
                if time.monotonic() > deadline:
                    raise BedrockException(
                        f"Bedrock stream exceeded time budget of {self.timeout}s"
                    )
                chunk = event.get('chunk')
                if not chunk:
                    continue
                payload = json.loads(chunk['bytes'])
                if payload.get('type') == 'content_block_delta':
                    text = payload.get('delta', {}).get('text')
                    if text:
                        yield text
        except ClientError as e:
            raise self._client_error(e)
        except (BotoCoreError, ValueError, KeyError) as e:
            raise BedrockException(f"Bedrock stream failed: {str(e)}")

    def _build_body(
        self,
        system_prompt: str,
        prompt: Optional[str],
        messages: Optional[List[Dict[str, Any]]],
        temperature: Optional[float],
        max_tokens: Optional[int]
    ) -> Dict[str, Any]:
        """Assemble the Anthropic messages request body."""
        if messages:
            chat = normalize_messages(messages)
        elif prompt is not None:
            chat = [{"role": "user", "content": prompt}]
        else:
            raise ValueError("Either prompt or messages is required")

        if not chat:
            raise ValueError("No usable messages to send")

        return {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": max_tokens or self.settings.claude_max_tokens,
            "temperature": self.settings.claude_temperature if temperature is None else temperature,
            "system": system_prompt,
            "messages": chat
        }

    def _call_bedrock(self, body: Dict[str, Any]) -> str:
        """
        Call AWS Bedrock with a prepared body.

        Args:
            body: Request body

        Returns:
            str: Claude's response text

        Raises:
            BedrockException: If API call fails
        """
        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(body)
            )

            response_body = json.loads(response['body'].read())

            if 'content' not in response_body:
                raise BedrockException("Invalid response format: missing 'content'")

            content = response_body['content']
            if not content:
                raise BedrockException("Empty response from Claude")

            return "".join(block.get('text', '') for block in content if block.get('type', 'text') == 'text')

        except ClientError as e:
            raise self._client_error(e)
        except BedrockException:
            raise
        except Exception as e:
            raise BedrockException(f"Bedrock call failed: {str(e)}")

    def _client_error(self, error: ClientError) -> BedrockException:
        """Translate a botocore ClientError into a BedrockException."""
        error_code = error.response['Error']['Code']
        error_message = error.response['Error']['Message']

        if error_code == 'ThrottlingException':
            return BedrockException(f"Rate limit exceeded: {error_message}")
        if error_code == 'ValidationException':
            return BedrockException(f"Invalid request: {error_message}")
        return BedrockException(f"AWS Bedrock error: {error_code} - {error_message}")


def normalize_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Convert chat-UI messages to the role/content pairs Claude expects.

    UI messages carry either a "content" string or a list of "parts" with
    text. System messages and messages without text are dropped, and
    consecutive turns from the same role are merged.

    Args:
        messages: Messages from the client

    Returns:
        List of {"role", "content"} dicts starting with a user turn
    """
    normalized: List[Dict[str, str]] = []

    for message in messages:
        role = message.get("role")
        if role not in ("user", "assistant"):
            continue

        content = message.get("content")
        if isinstance(content, str):
            text = content
        else:
            parts = message.get("parts") or (content if isinstance(content, list) else [])
            text = "".join(
                part.get("text", "") for part in parts
                if isinstance(part, dict) and part.get("type", "text") == "text"
            )

        if not text.strip():
            continue

        if normalized and normalized[-1]["role"] == role:
            normalized[-1]["content"] += "\n\n" + text
        else:
            normalized.append({"role": role, "content": text})

    while normalized and normalized[0]["role"] != "user":
        normalized.pop(0)

    return normalized
