"""
Generation service: creates and versions the HTML sites of a conversation.

Every conversation is either empty or has exactly one generation flagged
as its current version. New versions replace the current one through a
compare-and-swap on that flag, so concurrent writers cannot both win.
"""

import time
import uuid
from datetime import datetime
from typing import Callable, Dict, Any, List, Optional, Tuple

from sqlalchemy import desc, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import get_settings
from sitegen.models.conversation import Conversation
from sitegen.models.generation import Generation, GenerationStatus, DeploymentStatus
from sitegen.services.claude_service import ClaudeService
from sitegen.services.conversation_service import ConversationService
from sitegen.services.errors import (
    AuthorizationError, NotFoundError, PreconditionError, VersionConflictError
)
from sitegen.services.prompts import GENERATE_SYSTEM_PROMPT, EDIT_SYSTEM_PROMPT, build_edit_prompt
from sitegen.utils.html_helpers import extract_html, download_filename
from sitegen.utils.logger import get_logger, log_generation

logger = get_logger(__name__)


class GenerationService:
    """Service owning conversation versioning and generation records."""

    def __init__(self, db: Session, claude_service: Optional[ClaudeService] = None):
        """
        Initialize generation service.

        Args:
            db: Database session
            claude_service: Language-model gateway (created on first use if omitted)
        """
        self.db = db
        self.settings = get_settings()
        self.conversation_service = ConversationService(db)
        self.max_attempts = max(1, self.settings.generation_max_conflict_retries)
        self.time_budget = self.settings.generation_timeout_seconds
        self._claude_service = claude_service

    @property
    def claude_service(self) -> ClaudeService:
        if self._claude_service is None:
            self._claude_service = ClaudeService()
        return self._claude_service

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def generate(self, user_id: str, message: str, conversation_id: Optional[str] = None) -> Generation:
        """
        Generate a site from scratch.

        Creates the conversation when no id is given.

        Args:
            user_id: Caller
            message: The user's request
            conversation_id: Existing conversation to add the site to

        Returns:
            Generation: The new current version

        Raises:
            NotFoundError: If conversation_id is unknown or not the caller's
            BedrockException: If the model call fails (nothing is written)
        """
        start_time = time.time()

        conversation = None
        if conversation_id:
            conversation = self._get_owned_conversation(conversation_id, user_id)

        ai_response = self.claude_service.generate_text(GENERATE_SYSTEM_PROMPT, prompt=message)

        generation = self.save_generation(user_id, message, ai_response, conversation=conversation)

        log_generation(
            logger, "generate", message, generation.conversation_id,
            generation.version, time.time() - start_time
        )
        return generation

    def edit(self, user_id: str, conversation_id: Optional[str], instruction: str) -> Generation:
        """
        Apply an edit instruction to the conversation's current site.

        On a version conflict the model is asked again against the newer
        current version, so no concurrent edit is lost.

        Args:
            user_id: Caller
            conversation_id: Conversation to edit
            instruction: What to change

        Returns:
            Generation: The new current version

        Raises:
            PreconditionError: No conversation id, or nothing to edit yet
            NotFoundError: Conversation unknown or not the caller's
            VersionConflictError: Lost the race on every attempt, or ran out of time
        """
        if not conversation_id:
            raise PreconditionError("No conversation ID provided for editing")

        start_time = time.time()
        self._get_owned_conversation(conversation_id, user_id)

        def produce(current: Optional[Generation]) -> Tuple[str, Optional[str]]:
            if current is None:
                raise PreconditionError(
                    "No website found to edit",
                    {"conversation_id": conversation_id}
                )
            current_html = extract_html(current.ai_response)
            ai_response = self.claude_service.generate_text(
                EDIT_SYSTEM_PROMPT,
                prompt=build_edit_prompt(instruction, current_html)
            )
            return ai_response, current_html

        generation = self._write_with_retry(conversation_id, user_id, instruction, produce)

        log_generation(
            logger, "edit", instruction, conversation_id,
            generation.version, time.time() - start_time
        )
        return generation

    def save_generation(
        self,
        user_id: str,
        user_prompt: str,
        ai_response: str,
        conversation_id: Optional[str] = None,
        conversation: Optional[Conversation] = None
    ) -> Generation:
        """
        Persist already-generated text as the conversation's new current version.

        This is the join point for callers that produce the text themselves
        (the streaming chat endpoint). A new conversation and its first
        version are written in one transaction.

        Args:
            user_id: Caller
            user_prompt: Raw prompt or serialized user messages
            ai_response: Model output
            conversation_id: Existing conversation, if any
            conversation: Already-loaded conversation (skips the lookup)

        Returns:
            Generation: The new current version
        """
        if conversation is None and conversation_id:
            conversation = self._get_owned_conversation(conversation_id, user_id)

        if conversation is None:
            conversation = self.conversation_service.create_conversation(
                user_id, user_prompt, commit=False
            )
            logger.info(f"Created new conversation: {conversation.id}")
            return self._commit_new_version(
                conversation, user_id, user_prompt, ai_response,
                previous_html=None, based_on=None
            )

        return self._write_with_retry(
            conversation.id, user_id, user_prompt,
            lambda current: (ai_response, None)
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_generation(self, conversation_id: str) -> Optional[Generation]:
        """
        Get the generation flagged as current for a conversation.

        Args:
            conversation_id: Conversation UUID

        Returns:
            Generation or None while the conversation is empty
        """
        return self.db.query(Generation).filter(
            Generation.conversation_id == conversation_id,
            Generation.is_current_version.is_(True)
        ).first()

    def require_current_generation(self, user_id: str, conversation_id: Optional[str], action: str) -> Generation:
        """
        Current generation of an owned conversation, or a precondition error.

        Args:
            user_id: Caller
            conversation_id: Conversation UUID
            action: Verb used in error messages ("deploy", "download")

        Returns:
            Generation: Current version
        """
        if not conversation_id:
            raise PreconditionError(f"No conversation ID provided for {action}")

        self._get_owned_conversation(conversation_id, user_id)
        current = self.get_current_generation(conversation_id)
        if current is None:
            raise PreconditionError(
                f"No website found to {action}",
                {"conversation_id": conversation_id}
            )
        return current

    def get_owned_generation(self, user_id: str, generation_id: str) -> Generation:
        """
        Load a generation and verify the caller owns it.

        Raises:
            NotFoundError: Unknown generation id
            AuthorizationError: Owned by another user
        """
        generation = self.db.query(Generation).filter(Generation.id == generation_id).first()
        if generation is None:
            raise NotFoundError("Generation not found", {"generation_id": generation_id})
        if generation.user_id != user_id:
            logger.warning(f"User {user_id} denied access to generation {generation_id}")
            raise AuthorizationError("You do not own this generation", {"generation_id": generation_id})
        return generation

    def list_generations(self, user_id: str) -> List[Generation]:
        """All generations owned by the user, newest first."""
        return self.db.query(Generation).filter(
            Generation.user_id == user_id
        ).order_by(desc(Generation.created_at), desc(Generation.version)).all()

    def get_download(self, user_id: str, conversation_id: Optional[str]) -> Dict[str, Any]:
        """
        HTML and filename of the conversation's current site.

        Returns:
            Dict with generation, html and filename
        """
        current = self.require_current_generation(user_id, conversation_id, "download")
        return {
            "generation": current,
            "html": extract_html(current.ai_response),
            "filename": download_filename(current.id),
        }

    # ------------------------------------------------------------------
    # Direct mutations
    # ------------------------------------------------------------------

    def update_html(self, user_id: str, generation_id: str, html: str) -> Generation:
        """
        Overwrite a generation's stored response (manual editor path).

        Any version the caller owns may be updated; the model is not called.

        Args:
            user_id: Caller
            generation_id: Generation to overwrite
            html: New document

        Returns:
            Generation: Updated record
        """
        generation = self.get_owned_generation(user_id, generation_id)

        generation.ai_response = html
        generation.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(generation)

        logger.info(f"Manually updated HTML of generation {generation_id} ({len(html)} chars)")
        return generation

    def remove_generation(self, generation: Generation) -> None:
        """
        Delete a generation row.

        The current version may only go when it is the conversation's last
        generation; the conversation then returns to empty. Older versions
        are never promoted back to current.

        Raises:
            PreconditionError: Removing a current version that has history
        """
        conversation = self.db.query(Conversation).filter(
            Conversation.id == generation.conversation_id
        ).first()

        if generation.is_current_version:
            others = self.db.query(func.count(Generation.id)).filter(
                Generation.conversation_id == generation.conversation_id,
                Generation.id != generation.id
            ).scalar()
            if others:
                raise PreconditionError(
                    "The current version cannot be deleted while older versions exist",
                    {"generation_id": generation.id, "other_versions": others}
                )
            if conversation is not None:
                conversation.current_generation_id = None
                conversation.updated_at = datetime.utcnow()

        self.db.delete(generation)
        self.db.commit()
        logger.info(f"Deleted generation {generation.id}")

    def find_empty_generations(self) -> List[Generation]:
        """Non-current generations whose response is blank."""
        return self.db.query(Generation).filter(
            Generation.is_current_version.is_(False),
            func.trim(Generation.ai_response) == ""
        ).order_by(Generation.created_at).all()

    def purge_empty_generations(self, dry_run: bool = False) -> int:
        """
        Delete blank non-current generations left behind by failed writes.

        Args:
            dry_run: Only count, delete nothing

        Returns:
            int: Number of rows deleted (or that would be)
        """
        empty = self.find_empty_generations()
        if dry_run or not empty:
            return len(empty)

        for generation in empty:
            self.db.delete(generation)
        self.db.commit()

        logger.info(f"Purged {len(empty)} empty generation(s)")
        return len(empty)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_owned_conversation(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = self.conversation_service.get_conversation(conversation_id, user_id)
        if conversation is None:
            raise NotFoundError(
                f"Conversation not found: {conversation_id}",
                {"conversation_id": conversation_id}
            )
        return conversation

    def _write_with_retry(
        self,
        conversation_id: str,
        user_id: str,
        user_prompt: str,
        produce: Callable[[Optional[Generation]], Tuple[str, Optional[str]]]
    ) -> Generation:
        """
        Read the current version, produce the next one, swap it in.

        Args:
            conversation_id: Conversation being written
            user_id: Caller
            user_prompt: Prompt to store on the new version
            produce: Maps the current version (or None) to (ai_response, previous_html)

        Returns:
            Generation: The new current version

        Raises:
            VersionConflictError: Attempts or the shared time budget ran out
        """
        deadline = time.monotonic() + self.time_budget
        attempts = 0

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1 and time.monotonic() >= deadline:
                logger.warning(
                    f"Giving up on conversation {conversation_id} after {attempt - 1} "
                    f"attempt(s): time budget of {self.time_budget}s spent"
                )
                break

            attempts = attempt

            conversation = self.db.query(Conversation).filter(
                Conversation.id == conversation_id
            ).first()
            if conversation is None:
                raise NotFoundError(
                    f"Conversation not found: {conversation_id}",
                    {"conversation_id": conversation_id}
                )

            current = self.get_current_generation(conversation_id)
            ai_response, previous_html = produce(current)

            try:
                return self._commit_new_version(
                    conversation, user_id, user_prompt, ai_response,
                    previous_html=previous_html, based_on=current
                )
            except VersionConflictError:
                logger.warning(
                    f"Version conflict on conversation {conversation_id} "
                    f"(attempt {attempt}/{self.max_attempts})"
                )

        raise VersionConflictError(
            "The website was changed by another request; please try again",
            {"conversation_id": conversation_id, "attempts": attempts}
        )

    def _commit_new_version(
        self,
        conversation: Conversation,
        user_id: str,
        user_prompt: str,
        ai_response: str,
        previous_html: Optional[str],
        based_on: Optional[Generation]
    ) -> Generation:
        """
        Clear the old current flag and insert the new version in one transaction.

        Raises:
            VersionConflictError: based_on is no longer current, or another
                writer took the version number first
        """
        now = datetime.utcnow()

        try:
            if based_on is not None:
                result = self.db.execute(
                    update(Generation)
                    .where(
                        Generation.id == based_on.id,
                        Generation.is_current_version.is_(True)
                    )
                    .values(is_current_version=False, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise VersionConflictError(
                        "Current version changed concurrently",
                        {"conversation_id": conversation.id}
                    )
                version = based_on.version + 1
            else:
                highest = self.db.query(func.max(Generation.version)).filter(
                    Generation.conversation_id == conversation.id
                ).scalar()
                version = (highest or 0) + 1

            generation = Generation(
                id=str(uuid.uuid4()),
                conversation_id=conversation.id,
                user_id=user_id,
                version=version,
                user_prompt=user_prompt,
                ai_response=ai_response,
                previous_html=previous_html,
                model=self.settings.claude_model_id,
                status=GenerationStatus.COMPLETED,
                is_current_version=True,
                deployment_status=DeploymentStatus.NOT_DEPLOYED,
                created_at=now,
                updated_at=now
            )
            self.db.add(generation)

            conversation.current_generation_id = generation.id
            conversation.updated_at = now

            self.db.flush()
            self.db.commit()
        except VersionConflictError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            raise VersionConflictError(
                "Another version was written concurrently",
                {"conversation_id": conversation.id}
            ) from e

        self.db.refresh(generation)
        return generation
