"""
Deployment service: publishes generations to Netlify and tracks their status.

Local status only ever takes the four DeploymentStatus values. Provider
errors are caught here, logged, and turned into one of those states plus an
outcome tag for the caller; they are never stored as application state.
"""

import enum
import time
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from config import get_settings
from sitegen.models.generation import Generation, DeploymentStatus
from sitegen.services.errors import NotFoundError, PreconditionError
from sitegen.services.generation_service import GenerationService
from sitegen.services.netlify_service import NetlifyService, NetlifyException
from sitegen.utils.html_helpers import extract_html, slugify_site_name
from sitegen.utils.logger import get_logger, log_deployment

logger = get_logger(__name__)

INDEX_PATH = "/index.html"
MANUAL_DEPLOYMENT_PREFIX = "manual-"


class DeploymentOutcome(str, enum.Enum):
    """What a deployment operation actually achieved."""
    DEPLOYED = "deployed"
    DEPLOYING = "deploying"
    PROVIDER_FAILED = "provider_failed"
    UNCONFIRMED = "unconfirmed"
    NOT_CONFIGURED = "not_configured"
    UNCHANGED = "unchanged"
    RESET = "reset"
    DELETED = "deleted"
    MANUAL = "manual"


@dataclass
class DeploymentResult:
    """Typed result of a deployment operation."""
    success: bool
    outcome: DeploymentOutcome
    generation_id: str
    status: Optional[DeploymentStatus]
    message: str
    url: Optional[str] = None
    site_id: Optional[str] = None
    deploy_id: Optional[str] = None
    mock: bool = False
    changed: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        data["status"] = self.status.value if self.status else None
        return data


def map_provider_state(state: Optional[str]) -> DeploymentStatus:
    """
    Map a Netlify deploy state to a local status.

    ready -> deployed; error/failed -> failed; anything else is still building.
    """
    if state == "ready":
        return DeploymentStatus.DEPLOYED
    if state in ("error", "failed"):
        return DeploymentStatus.FAILED
    return DeploymentStatus.DEPLOYING


class DeploymentService:
    """Service orchestrating deployments of generations."""

    def __init__(
        self,
        db: Session,
        netlify_service: Optional[NetlifyService] = None,
        generation_service: Optional[GenerationService] = None
    ):
        """
        Initialize deployment service.

        Args:
            db: Database session
            netlify_service: Hosting client (defaults to one built from settings)
            generation_service: Used for ownership checks and row removal
        """
        self.db = db
        self.settings = get_settings()
        self.netlify = netlify_service or NetlifyService()
        self.generation_service = generation_service or GenerationService(db)
        self.poll_delay = self.settings.deploy_poll_delay_seconds

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def deploy(
        self,
        user_id: str,
        generation_id: str,
        html: Optional[str] = None,
        site_name: Optional[str] = None
    ) -> DeploymentResult:
        """
        Publish a generation as a new Netlify site.

        Args:
            user_id: Caller; must own the generation
            generation_id: Generation to publish
            html: Document to publish (defaults to the stored response)
            site_name: Requested subdomain

        Returns:
            DeploymentResult: Never leaves the generation without a defined status

        Raises:
            NotFoundError / AuthorizationError: Before anything is mutated
            PreconditionError: Empty HTML, or a deployment already in progress
        """
        generation = self.generation_service.get_owned_generation(user_id, generation_id)

        clean_html = extract_html(html if html is not None else generation.ai_response)
        if not clean_html.strip():
            raise PreconditionError("HTML content is required", {"generation_id": generation_id})

        if generation.deployment_status == DeploymentStatus.DEPLOYING:
            raise PreconditionError(
                "A deployment is already in progress for this generation",
                {"generation_id": generation_id}
            )

        if not self.netlify.configured:
            logger.warning(f"Netlify not configured; mock deployment for generation {generation_id}")
            result = DeploymentResult(
                success=False,
                outcome=DeploymentOutcome.NOT_CONFIGURED,
                generation_id=generation_id,
                status=generation.deployment_status,
                mock=True,
                message=(
                    "No hosting credential is configured, so nothing was deployed. "
                    "Download the HTML to publish it manually."
                )
            )
            self._log(result)
            return result

        if generation.deployment_status == DeploymentStatus.DEPLOYED:
            self._release_site(generation.deployment_id)

        name = slugify_site_name(site_name or "") or f"ai-website-{int(time.time() * 1000)}"

        self._set_deploying(generation)
        logger.info(f"Deploying generation {generation_id} as '{name}' ({len(clean_html)} chars)")

        site = None
        deploy = None
        try:
            site = self.netlify.create_site(name)
            recorded = self._swap_from_deploying(
                generation_id, [None],
                deployment_url=site.public_url,
                deployment_id=site.id,
                updated_at=datetime.utcnow()
            )
            if not recorded:
                return self._superseded(generation_id, site.id)
            deploy = self.netlify.deploy_files(site.id, {INDEX_PATH: clean_html})
        except NetlifyException as e:
            logger.error(f"Netlify deployment failed for generation {generation_id}: {e}")
            self._set_failed(generation_id, site.id if site else None)
            result = DeploymentResult(
                success=False,
                outcome=DeploymentOutcome.PROVIDER_FAILED,
                generation_id=generation_id,
                status=DeploymentStatus.FAILED,
                message=f"Netlify rejected the deployment ({e.kind}). Please try again."
            )
            self._log(result)
            return result
        except Exception:
            self._set_failed(generation_id, site.id if site else None)
            raise

        # Single fixed-delay check; anything unfinished is left for check_status
        time.sleep(self.poll_delay)

        generation = self._reload(user_id, generation_id, site.id)

        try:
            polled = self.netlify.get_site(site.id)
        except NetlifyException as e:
            logger.warning(f"Could not confirm deployment of generation {generation_id}: {e}")
            result = DeploymentResult(
                success=True,
                outcome=DeploymentOutcome.UNCONFIRMED,
                generation_id=generation_id,
                status=DeploymentStatus.DEPLOYING,
                url=site.public_url,
                site_id=site.id,
                deploy_id=deploy.id,
                message="Deployment started but its status could not be confirmed yet. Check again shortly."
            )
            self._log(result)
            return result

        result = self._reconcile(generation, polled, site.id, deploy_id=deploy.id)
        self._log(result)
        return result

    def check_status(self, user_id: str, generation_id: str) -> DeploymentResult:
        """
        Poll Netlify once for a generation that is still deploying.

        A no-op unless the status is deploying, a site id is recorded and a
        credential is configured.
        """
        generation = self.generation_service.get_owned_generation(user_id, generation_id)

        if (
            generation.deployment_status != DeploymentStatus.DEPLOYING
            or not generation.deployment_id
            or not self.netlify.configured
        ):
            return self._snapshot(generation, DeploymentOutcome.UNCHANGED, "No status check needed")

        try:
            polled = self.netlify.get_site(generation.deployment_id)
        except NetlifyException as e:
            logger.warning(f"Status check failed for generation {generation_id}: {e}")
            result = self._snapshot(generation, DeploymentOutcome.UNCONFIRMED, "Failed to check status")
            result.success = False
            return result

        result = self._reconcile(generation, polled, generation.deployment_id)
        self._log(result)
        return result

    def delete(self, user_id: str, generation_id: str) -> DeploymentResult:
        """
        Take a deployment down, or delete a never-deployed generation.

        Provider deletion is best-effort: its failure is logged and the
        local reset still happens.
        """
        generation = self.generation_service.get_owned_generation(user_id, generation_id)

        if generation.deployment_status == DeploymentStatus.NOT_DEPLOYED:
            self.generation_service.remove_generation(generation)
            return DeploymentResult(
                success=True,
                outcome=DeploymentOutcome.DELETED,
                generation_id=generation_id,
                status=None,
                message="Generation deleted from database"
            )

        self._release_site(generation.deployment_id)
        self._reset(generation)

        result = DeploymentResult(
            success=True,
            outcome=DeploymentOutcome.RESET,
            generation_id=generation_id,
            status=DeploymentStatus.NOT_DEPLOYED,
            message="Website deleted from Netlify and status updated to not deployed"
        )
        self._log(result)
        return result

    def record_manual_deployment(self, user_id: str, generation_id: str, url: Optional[str]) -> DeploymentResult:
        """
        Record a deployment the user made by hand (e.g. drag-and-drop).

        Args:
            user_id: Caller
            generation_id: Generation that was published
            url: Where it was published
        """
        generation = self.generation_service.get_owned_generation(user_id, generation_id)

        now = datetime.utcnow()
        generation.deployment_status = DeploymentStatus.DEPLOYED
        generation.deployment_url = url or None
        generation.deployment_id = f"{MANUAL_DEPLOYMENT_PREFIX}{int(time.time() * 1000)}"
        generation.deployed_at = now
        generation.updated_at = now
        self.db.commit()

        result = self._snapshot(generation, DeploymentOutcome.MANUAL, "Deployment status updated successfully")
        result.changed = True
        self._log(result)
        return result

    def release_conversation_sites(self, user_id: str, conversation_id: str) -> int:
        """
        Best-effort removal of every hosted site of a conversation.

        Returns:
            int: Number of sites a deletion was attempted for
        """
        generations = self.db.query(Generation).filter(
            Generation.conversation_id == conversation_id,
            Generation.user_id == user_id,
            Generation.deployment_status.in_([DeploymentStatus.DEPLOYED, DeploymentStatus.DEPLOYING]),
            Generation.deployment_id.isnot(None)
        ).all()

        for generation in generations:
            self._release_site(generation.deployment_id)
        return len(generations)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _reconcile(
        self,
        generation: Generation,
        polled,
        site_id: str,
        deploy_id: Optional[str] = None
    ) -> DeploymentResult:
        """
        Apply a polled provider state to the generation.

        The write only lands if the row is still deploying to site_id; a
        delete or redeploy made while the poll was in flight wins.
        """
        previous = generation.deployment_status
        new_status = map_provider_state(polled.published_state)
        now = datetime.utcnow()

        if new_status == DeploymentStatus.DEPLOYED:
            swapped = self._swap_from_deploying(
                generation.id, [site_id],
                deployment_status=DeploymentStatus.DEPLOYED,
                deployment_url=polled.public_url or generation.deployment_url,
                deployment_id=polled.id or site_id,
                deployed_at=now,
                updated_at=now
            )
            if not swapped:
                return self._superseded(generation.id, site_id, deploy_id)
            outcome = DeploymentOutcome.DEPLOYED
            message = "Successfully deployed to Netlify! Your website is now live."
        elif new_status == DeploymentStatus.FAILED:
            if not self._set_failed(generation.id, site_id):
                return self._superseded(generation.id, site_id, deploy_id)
            outcome = DeploymentOutcome.PROVIDER_FAILED
            message = "Netlify reported that the build failed."
        else:
            outcome = DeploymentOutcome.DEPLOYING
            message = "Deployment started! Your site is still building on Netlify."

        result = self._snapshot(generation, outcome, message)
        result.success = new_status != DeploymentStatus.FAILED
        result.deploy_id = deploy_id
        result.changed = new_status != previous
        return result

    def _swap_from_deploying(self, generation_id: str, site_ids: list, **values) -> bool:
        """
        Compare-and-swap a deploying row whose site id is one of site_ids.

        None in site_ids matches a row with no site recorded yet.

        Returns:
            bool: False if another request moved the row first
        """
        recorded = [Generation.deployment_id == s for s in site_ids if s]
        if None in site_ids:
            recorded.append(Generation.deployment_id.is_(None))

        result = self.db.execute(
            update(Generation)
            .where(
                Generation.id == generation_id,
                Generation.deployment_status == DeploymentStatus.DEPLOYING,
                or_(*recorded)
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def _superseded(self, generation_id: str, site_id: str, deploy_id: Optional[str] = None) -> DeploymentResult:
        """Report a deployment overtaken by another request and drop its orphaned site."""
        self.db.expire_all()
        generation = self.db.get(Generation, generation_id)

        if generation is None or generation.deployment_id != site_id:
            self._release_site(site_id)
        logger.warning(f"Deployment of generation {generation_id} to site {site_id} was superseded")

        message = "The deployment was changed by another request; nothing was updated."
        if generation is None:
            result = DeploymentResult(
                success=False,
                outcome=DeploymentOutcome.UNCHANGED,
                generation_id=generation_id,
                status=None,
                message=message
            )
        else:
            result = self._snapshot(generation, DeploymentOutcome.UNCHANGED, message)
            result.success = False
        result.deploy_id = deploy_id
        return result

    def _set_deploying(self, generation: Generation):
        generation.deployment_status = DeploymentStatus.DEPLOYING
        generation.deployment_url = None
        generation.deployment_id = None
        generation.deployed_at = None
        generation.updated_at = datetime.utcnow()
        self.db.commit()

    def _set_failed(self, generation_id: str, created_site_id: Optional[str]) -> bool:
        """Mark failed, clearing the site fields and removing any half-made site."""
        self.db.rollback()
        self._release_site(created_site_id)

        return self._swap_from_deploying(
            generation_id, [created_site_id, None],
            deployment_status=DeploymentStatus.FAILED,
            deployment_url=None,
            deployment_id=None,
            deployed_at=None,
            updated_at=datetime.utcnow()
        )

    def _reset(self, generation: Generation):
        generation.deployment_status = DeploymentStatus.NOT_DEPLOYED
        generation.deployment_url = None
        generation.deployment_id = None
        generation.deployed_at = None
        generation.updated_at = datetime.utcnow()
        self.db.commit()

    def _reload(self, user_id: str, generation_id: str, site_id: str) -> Generation:
        """Re-read and re-verify the generation after the provider calls."""
        self.db.expire_all()
        try:
            return self.generation_service.get_owned_generation(user_id, generation_id)
        except NotFoundError:
            logger.warning(f"Generation {generation_id} vanished during deployment; removing site {site_id}")
            self._release_site(site_id)
            raise

    def _release_site(self, site_id: Optional[str]) -> bool:
        """
        Best-effort deletion of a hosted site.

        Returns:
            bool: True if Netlify confirmed the deletion
        """
        if not site_id or site_id.startswith(MANUAL_DEPLOYMENT_PREFIX):
            return False
        if not self.netlify.configured:
            logger.warning(f"Netlify not configured, skipping deletion of site {site_id}")
            return False

        try:
            self.netlify.delete_site(site_id)
            return True
        except NetlifyException as e:
            logger.error(f"Failed to delete Netlify site {site_id}: {e}")
            return False

    def _snapshot(self, generation: Generation, outcome: DeploymentOutcome, message: str) -> DeploymentResult:
        return DeploymentResult(
            success=True,
            outcome=outcome,
            generation_id=generation.id,
            status=generation.deployment_status,
            url=generation.deployment_url,
            site_id=generation.deployment_id,
            message=message
        )

    def _log(self, result: DeploymentResult):
        log_deployment(
            logger, result.generation_id, result.outcome.value,
            result.status.value if result.status else None, result.url
        )
