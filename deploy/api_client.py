"""Async HTTP client for the Workers assets upload and script APIs."""

import asyncio
import base64
import uuid
from typing import Optional, Sequence

import httpx

from common.constants import FALLBACK_SCRIPT, MODULE_CONTENT_TYPE
from common.logging_config import get_logger
from deploy.config import Config
from deploy.exceptions import DeployError, PublishError, SessionError, UploadError
from deploy.manifest import Manifest
from deploy.models import (
    AssetUploadResponse,
    BucketUploadResult,
    ScriptAssets,
    ScriptBinding,
    ScriptMetadata,
    UploadCompleted,
    UploadFailed,
    UploadOutcome,
    UploadSession,
    UploadSessionRequest,
    UploadSessionResponse,
)
from deploy.utils import format_file_size, guess_content_type

logger = get_logger(__name__)


def select_completion_token(results: Sequence[BucketUploadResult]) -> Optional[str]:
    """
    Pick the completion token out of joined bucket results.

    The upload that completes the asset set is answered with 201 and the
    completion token; the others get 202. With concurrent uploads that
    need not be the last bucket, so a 201 token wins. Otherwise the last
    token in partition order is used.

    Args:
        results: Bucket results in partition order

    Returns:
        Completion token, or None if no response carried one
    """
    for result in results:
        if result.status_code == 201 and result.jwt:
            return result.jwt
    for result in reversed(results):
        if result.jwt:
            return result.jwt
    return None


class AssetsApiClient:
    """HTTP client for one account/script pair of the Workers API."""

    def __init__(self, config: Config):
        """
        Initialize the API client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.AsyncClient(
            base_url=config.get_api_url(),
            timeout=config.get_timeout()
        )
        logger.debug(f"Initialized AssetsApiClient [base_url={config.get_api_url()}]")

    @property
    def _account_path(self) -> str:
        return f"/accounts/{self.config.get_account_id()}/workers"

    @property
    def _script_path(self) -> str:
        return f"{self._account_path}/scripts/{self.config.get_script_name()}"

    async def _request(self, method: str, endpoint: str, token: str, **kwargs) -> httpx.Response:
        """
        Send a single authorized request. No retries.

        Args:
            method: HTTP method
            endpoint: Path relative to the API base URL
            token: Bearer credential for this request
            **kwargs: Passed through to httpx

        Returns:
            HTTP response object

        Raises:
            httpx.HTTPError: On transport failures and timeouts
        """
        request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['Authorization'] = f"Bearer {token}"
        headers['X-Request-ID'] = request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={request_id}]")
        response = await self.session.request(method, endpoint, headers=headers, **kwargs)
        logger.debug(
            f"Response received: {method} {endpoint} status={response.status_code} [request_id={request_id}]"
        )
        return response

    def _format_error(self, response: httpx.Response) -> str:
        """
        Format an API error response into a readable message.

        Args:
            response: HTTP response with error

        Returns:
            Formatted error message
        """
        try:
            data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}: {response.text[:200]}"

        errors = data.get('errors') if isinstance(data, dict) else None
        if errors:
            parts = []
            for error in errors:
                if isinstance(error, dict):
                    code = error.get('code')
                    message = error.get('message', '')
                    parts.append(f"[{code}] {message}" if code is not None else message)
                else:
                    parts.append(str(error))
            return f"HTTP {response.status_code}: " + "; ".join(parts)
        return f"HTTP {response.status_code}"

    async def start_upload_session(self, manifest: Manifest) -> UploadSession:
        """
        Send the manifest and open an assets upload session.

        Args:
            manifest: Local asset manifest

        Returns:
            UploadSession with the upload token and the buckets still missing

        Raises:
            SessionError: On a non-success response or a missing token
        """
        body = UploadSessionRequest.model_validate({'manifest': manifest.to_payload()})
        response = await self._request(
            'POST',
            f"{self._script_path}/assets-upload-session",
            self.config.api_token,
            json=body.model_dump()
        )

        if not response.is_success:
            raise SessionError(f"Upload session rejected: {self._format_error(response)}")

        try:
            data = UploadSessionResponse.model_validate(response.json())
        except ValueError as e:
            raise SessionError(f"Unreadable upload session response: {e}")

        if not data.success:
            raise SessionError(f"Upload session failed: {self._format_error(response)}")
        if data.result is None or not data.result.jwt:
            raise SessionError("Upload session response did not include a token")

        buckets = tuple(tuple(bucket) for bucket in data.result.buckets if bucket)
        logger.info(
            f"Upload session opened: {sum(len(b) for b in buckets)} of {len(manifest)} "
            f"file(s) missing in {len(buckets)} bucket(s)"
        )
        return UploadSession(jwt=data.result.jwt, buckets=buckets)

    async def _upload_bucket(
        self,
        index: int,
        bucket: Sequence[str],
        session_token: str,
        manifest: Manifest
    ) -> BucketUploadResult:
        """
        Upload every file of one bucket in a single multipart request.

        Each part is named after the fingerprint and carries the file's
        base64-encoded content.

        Raises:
            UnknownFingerprintError: If a fingerprint is not in the manifest
            OSError: If a source file cannot be read
            UploadError: On a non-success response or an unreadable body
        """
        files = []
        total = 0
        for fingerprint in bucket:
            path = manifest.resolve(fingerprint)
            content = await asyncio.to_thread(manifest.source_path(path).read_bytes)
            total += len(content)
            files.append(
                (fingerprint, (fingerprint, base64.b64encode(content), guess_content_type(path)))
            )

        logger.debug(f"Uploading bucket {index}: {len(files)} file(s), {format_file_size(total)}")
        response = await self._request(
            'POST',
            f"{self._account_path}/assets/upload",
            session_token,
            params={'base64': 'true'},
            files=files
        )

        if not response.is_success:
            raise UploadError(f"Bucket {index} rejected: {self._format_error(response)}")

        try:
            data = AssetUploadResponse.model_validate(response.json())
        except ValueError as e:
            raise UploadError(f"Unreadable response for bucket {index}: {e}")

        if not data.success:
            raise UploadError(f"Bucket {index} failed: {self._format_error(response)}")

        jwt = data.result.jwt if data.result else None
        logger.info(f"Uploaded bucket {index} ({len(files)} file(s)) status={response.status_code}")
        return BucketUploadResult(index=index, status_code=response.status_code, jwt=jwt)

    async def upload_buckets(
        self,
        session_token: str,
        buckets: Sequence[Sequence[str]],
        manifest: Manifest
    ) -> UploadOutcome:
        """
        Upload all buckets concurrently and wait for every one of them.

        Args:
            session_token: Token from the upload session
            buckets: Fingerprint buckets from the upload session
            manifest: Manifest the session was opened with

        Returns:
            UploadCompleted with the completion token, or UploadFailed with
            the reason of the first failing bucket in partition order
        """
        semaphore = asyncio.Semaphore(self.config.get_max_concurrent_uploads())

        async def upload(index: int, bucket: Sequence[str]) -> BucketUploadResult:
            async with semaphore:
                return await self._upload_bucket(index, bucket, session_token, manifest)

        tasks = [upload(index, bucket) for index, bucket in enumerate(buckets)]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        completed = []
        failures = []
        for result in results:
            if isinstance(result, BucketUploadResult):
                completed.append(result)
            elif isinstance(result, (DeployError, OSError, httpx.HTTPError)):
                failures.append(result)
            else:
                # cancellation and unexpected errors abort the run
                raise result

        if failures:
            for failure in failures:
                logger.error(f"Bucket upload failed: {failure}")
            return UploadFailed(reason=str(failures[0]) or type(failures[0]).__name__)

        completion_token = select_completion_token(completed)
        if completion_token is None:
            return UploadFailed(reason="No completion token received from bucket uploads")

        logger.info(f"All {len(completed)} bucket(s) uploaded")
        return UploadCompleted(completion_token=completion_token)

    def _load_script_source(self) -> bytes:
        script_file = self.config.get_script_file()
        if script_file is None:
            return FALLBACK_SCRIPT.encode('utf-8')
        return script_file.read_bytes()

    def build_script_metadata(self, completion_token: str) -> ScriptMetadata:
        binding_name = self.config.get('binding_name')
        bindings = [ScriptBinding(name=binding_name, type='assets')] if binding_name else []
        return ScriptMetadata(
            main_module=self.config.get('main_module'),
            compatibility_date=self.config.get('compatibility_date'),
            assets=ScriptAssets(jwt=completion_token),
            bindings=bindings
        )

    async def publish_script(self, completion_token: str) -> None:
        """
        Upload the script with its assets metadata.

        Args:
            completion_token: Token proving all assets are present remotely

        Raises:
            PublishError: If the response status is not 200
            OSError: If the configured script file cannot be read
        """
        metadata = self.build_script_metadata(completion_token)
        source = self._load_script_source()
        main_module = metadata.main_module

        response = await self._request(
            'PUT',
            self._script_path,
            self.config.api_token,
            data={'metadata': metadata.model_dump_json()},
            files={main_module: (main_module, source, MODULE_CONTENT_TYPE)}
        )

        if response.status_code != 200:
            raise PublishError(
                f"Script upload failed: {self._format_error(response)}",
                status_code=response.status_code
            )
        logger.info(f"Published script {self.config.get_script_name()}")

    async def close(self) -> None:
        """Close the HTTP session."""
        await self.session.aclose()
