"""
Netlify service: typed client for the static-hosting API.

Responses are parsed into small dataclasses here so that nothing past this
module handles raw provider JSON.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from config import get_settings
from sitegen.utils.logger import get_logger

logger = get_logger(__name__)


class NetlifyException(Exception):
    """Custom exception for Netlify API errors."""

    def __init__(self, kind: str, detail: str, status_code: Optional[int] = None):
        super().__init__(f"{kind}: {detail}")
        self.kind = kind
        self.detail = detail
        self.status_code = status_code


@dataclass
class NetlifySite:
    """A hosted site and the state of its published deploy."""
    id: str
    name: Optional[str]
    url: Optional[str]
    ssl_url: Optional[str] = None
    published_state: Optional[str] = None

    @property
    def public_url(self) -> Optional[str]:
        return self.ssl_url or self.url


@dataclass
class NetlifyDeploy:
    """A deploy and the file digests Netlify still needs uploaded."""
    id: str
    state: Optional[str] = None
    required: List[str] = field(default_factory=list)


def sha1_digest(content: str) -> str:
    """SHA-1 hex digest Netlify uses to identify file contents."""
    return hashlib.sha1(content.encode("utf-8")).hexdigest()


class NetlifyService:
    """Service wrapping the Netlify REST API."""

    def __init__(self, access_token: Optional[str] = None, client: Optional[httpx.Client] = None):
        """
        Initialize Netlify service.

        Args:
            access_token: Personal access token (defaults to settings)
            client: Preconfigured HTTP client (used by tests)
        """
        self.settings = get_settings()
        self.access_token = access_token if access_token is not None else self.settings.netlify_access_token
        self.base_url = self.settings.netlify_api_url.rstrip("/")
        self._client = client

    @property
    def configured(self) -> bool:
        """Whether a usable access token is present."""
        return bool(self.access_token) and self.access_token != "your_netlify_access_token_here"

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=self.settings.netlify_timeout_seconds
            )
        return self._client

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # API calls
    # ------------------------------------------------------------------

    def create_site(self, name: Optional[str] = None) -> NetlifySite:
        """
        Create a new site.

        Args:
            name: Subdomain to request (Netlify picks one if omitted)

        Returns:
            NetlifySite: The created site
        """
        payload = {"name": name} if name else {}
        data = self._request("POST", "/sites", json=payload)
        site = self._parse_site(data)
        logger.info(f"Created Netlify site {site.id} ({site.public_url})")
        return site

    def create_deploy(self, site_id: str, files: Dict[str, str]) -> NetlifyDeploy:
        """
        Start a file-digest deploy.

        Args:
            site_id: Target site
            files: Map of path ("/index.html") to SHA-1 digest

        Returns:
            NetlifyDeploy: Deploy with the digests still to upload
        """
        data = self._request("POST", f"/sites/{site_id}/deploys", json={"files": files})
        deploy_id = data.get("id")
        if not deploy_id:
            raise NetlifyException("invalid_response", "Deploy response missing 'id'")

        required = data.get("required") or []
        return NetlifyDeploy(id=str(deploy_id), state=data.get("state"), required=list(required))

    def upload_file(self, deploy_id: str, path: str, content: str) -> None:
        """
        Upload the raw bytes of one file of a deploy.

        Args:
            deploy_id: Deploy awaiting the file
            path: Site path ("/index.html")
            content: File contents
        """
        self._request(
            "PUT",
            f"/deploys/{deploy_id}/files/{path.lstrip('/')}",
            content=content.encode("utf-8"),
            headers={"Content-Type": "application/octet-stream"}
        )
        logger.info(f"Uploaded {path} to deploy {deploy_id}")

    def deploy_files(self, site_id: str, files: Dict[str, str]) -> NetlifyDeploy:
        """
        Deploy a set of files, uploading whatever Netlify does not know yet.

        Args:
            site_id: Target site
            files: Map of path to contents

        Returns:
            NetlifyDeploy: The created deploy
        """
        digests = {path: sha1_digest(content) for path, content in files.items()}
        deploy = self.create_deploy(site_id, digests)

        if deploy.required:
            logger.info(f"Deploy {deploy.id} requires {len(deploy.required)} upload(s)")
        for required_digest in deploy.required:
            paths = [path for path, digest in digests.items() if digest == required_digest]
            if not paths:
                raise NetlifyException(
                    "invalid_response",
                    f"Deploy requested unknown digest {required_digest}"
                )
            for path in paths:
                self.upload_file(deploy.id, path, files[path])

        return deploy

    def get_site(self, site_id: str) -> NetlifySite:
        """Fetch a site including its published deploy state."""
        return self._parse_site(self._request("GET", f"/sites/{site_id}"))

    def delete_site(self, site_id: str) -> None:
        """Delete a site (404 counts as already gone)."""
        try:
            self._request("DELETE", f"/sites/{site_id}")
        except NetlifyException as e:
            if e.status_code == 404:
                logger.info(f"Netlify site {site_id} already deleted")
                return
            raise
        logger.info(f"Deleted Netlify site {site_id}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> dict:
        """
        Perform a request and decode its JSON body.

        Raises:
            NetlifyException: not_configured, network_error, http_error or invalid_response
        """
        if not self.configured:
            raise NetlifyException("not_configured", "NETLIFY_ACCESS_TOKEN is not set")

        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise NetlifyException("network_error", f"{method} {path} failed: {e}")

        if response.status_code >= 400:
            raise NetlifyException(
                "http_error",
                f"{method} {path} returned {response.status_code}: {response.text[:300]}",
                status_code=response.status_code
            )

        if not response.content:
            return {}

        try:
            data = response.json()
        except ValueError:
            raise NetlifyException(
                "invalid_response",
                f"Non-JSON response (HTTP {response.status_code}): {response.text[:300]}"
            )

        if not isinstance(data, dict):
            raise NetlifyException("invalid_response", f"Unexpected payload type {type(data).__name__}")
        return data

    def _parse_site(self, data: dict) -> NetlifySite:
        site_id = data.get("id") or data.get("site_id")
        if not site_id:
            raise NetlifyException("invalid_response", "Site response missing 'id'")

        published = data.get("published_deploy") or {}
        return NetlifySite(
            id=str(site_id),
            name=data.get("name"),
            url=data.get("url"),
            ssl_url=data.get("ssl_url"),
            published_state=published.get("state") if isinstance(published, dict) else None
        )
