"""Deployment run: manifest, upload session, bucket uploads, publish."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx
from pydantic import ValidationError

from common.logging_config import get_logger
from deploy.api_client import AssetsApiClient
from deploy.config import Config
from deploy.exceptions import DeployError, UploadError
from deploy.manifest import Manifest, build_manifest
from deploy.models import UploadFailed

logger = get_logger(__name__)


class DeployState(str, Enum):
    START = "start"
    MANIFEST_BUILT = "manifest_built"
    SESSION_OPENED = "session_opened"
    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass(frozen=True, eq=False)
class DeployResult:
    """Final state of a run."""

    state: DeployState
    completion_token: Optional[str] = None
    error: Optional[str] = None
    manifest: Optional[Manifest] = None

    @property
    def success(self) -> bool:
        return self.state != DeployState.FAILED


class Deployer:
    """
    Runs one deployment from START to PUBLISHED or FAILED.

    Steps run strictly in sequence; any error moves the run to FAILED and
    nothing is retried. A re-run starts over from START.
    """

    def __init__(self, config: Config, client: Optional[AssetsApiClient] = None):
        self.config = config
        self.client = client
        self.state = DeployState.START
        self.manifest: Optional[Manifest] = None
        self.completion_token: Optional[str] = None

    def _transition(self, state: DeployState) -> None:
        logger.debug(f"State {self.state.name} -> {state.name}")
        self.state = state

    def _fail(self, error: str) -> DeployResult:
        logger.error(f"Deployment failed in state {self.state.name}: {error}")
        self._transition(DeployState.FAILED)
        return DeployResult(state=self.state, error=error, manifest=self.manifest)

    async def run(self, dry_run: bool = False) -> DeployResult:
        """
        Execute the deployment.

        The API client, injected or created here, is closed when the run
        ends, whatever the outcome.

        Args:
            dry_run: Stop after building the manifest, without network access

        Returns:
            DeployResult in state PUBLISHED, MANIFEST_BUILT (dry run) or FAILED
        """
        try:
            self.manifest = build_manifest(self.config.get_assets_dir())
            self._transition(DeployState.MANIFEST_BUILT)
            if dry_run:
                logger.info("Dry run: skipping upload session and publish")
                return DeployResult(state=self.state, manifest=self.manifest)

            if self.client is None:
                self.client = AssetsApiClient(self.config)
            await self._deploy(self.client)

        except (DeployError, OSError, httpx.HTTPError, ValidationError) as e:
            return self._fail(str(e) or type(e).__name__)
        finally:
            if self.client is not None:
                await self.client.close()

        return DeployResult(
            state=self.state,
            completion_token=self.completion_token,
            manifest=self.manifest
        )

    async def _deploy(self, client: AssetsApiClient) -> None:
        session = await client.start_upload_session(self.manifest)
        self._transition(DeployState.SESSION_OPENED)

        if session.buckets:
            outcome = await client.upload_buckets(session.jwt, session.buckets, self.manifest)
            if isinstance(outcome, UploadFailed):
                raise UploadError(outcome.reason)
            self.completion_token = outcome.completion_token
            self._transition(DeployState.UPLOADED)
        else:
            logger.info("All assets already present remotely, nothing to upload")
            self.completion_token = session.jwt
            self._transition(DeployState.SKIPPED)

        await client.publish_script(self.completion_token)
        self._transition(DeployState.PUBLISHED)
