"""
Maps a free-text chat message to the action the agent should take.
"""

import enum

from sitegen.services.claude_service import ClaudeService
from sitegen.services.prompts import CLASSIFICATION_PROMPT
from sitegen.utils.logger import get_logger

logger = get_logger(__name__)


class Intention(str, enum.Enum):
    """Actions the agent endpoint can dispatch to."""
    GENERATE = "generate"
    DEPLOY = "deploy"
    BOTH = "both"
    DOWNLOAD = "download"
    EDIT = "edit"


class IntentionClassifier:
    """Best-effort classifier; anything unexpected becomes GENERATE."""

    def __init__(self, claude_service: ClaudeService):
        self.claude_service = claude_service

    def classify(self, message: str) -> Intention:
        """
        Classify a user message.

        Args:
            message: The user's chat message

        Returns:
            Intention: One of the closed set; GENERATE on any failure
        """
        try:
            reply = self.claude_service.generate_text(
                CLASSIFICATION_PROMPT,
                prompt=message,
                temperature=0.0,
                max_tokens=10
            )
        except Exception as e:
            logger.warning(f"Intention classification failed, defaulting to generate: {e}")
            return Intention.GENERATE

        label = (reply or "").strip().lower().strip('."\'')
        try:
            intention = Intention(label)
        except ValueError:
            logger.warning(f"Unrecognized intention {reply!r}, defaulting to generate")
            return Intention.GENERATE

        logger.info(f"Classified intention: {intention.value}")
        return intention
