"""
GitHub gateway.

Wrapper around the GitHub REST API for token checks, repository listing,
file read/write/delete and project sync. The token is supplied per call.

File content travels base64-encoded, as the contents API expects.
"""

import base64
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from app.config import get_settings
from app.errors import UpstreamServiceError
from app.logging_config import service_logger as logger


@dataclass
class GitHubRepo:
    name: str
    full_name: str
    description: str
    private: bool
    html_url: str


@dataclass
class GitHubFile:
    name: str
    path: str
    type: str  # "file" or "dir"
    sha: Optional[str] = None
    content: Optional[str] = None  # Decoded; only present for single-file reads
    download_url: Optional[str] = None


@dataclass
class FileSyncOutcome:
    path: str
    success: bool
    error: Optional[str] = None


@dataclass
class SyncReport:
    """Per-file results of a project sync. Writes are not rolled back."""
    repo_full_name: str
    outcomes: list[FileSyncOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(o.success for o in self.outcomes)

    @property
    def failed(self) -> list[FileSyncOutcome]:
        return [o for o in self.outcomes if not o.success]


def encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_content(encoded: str) -> str:
    # GitHub wraps base64 at 60 chars; b64decode drops the newlines
    return base64.b64decode(encoded).decode("utf-8")


def _repo_from_json(data: dict) -> GitHubRepo:
    return GitHubRepo(
        name=data["name"],
        full_name=data["full_name"],
        description=data.get("description") or "",
        private=bool(data.get("private")),
        html_url=data.get("html_url", "")
    )


def _file_from_json(data: dict) -> GitHubFile:
    content = data.get("content")
    return GitHubFile(
        name=data["name"],
        path=data["path"],
        type=data.get("type", "file"),
        sha=data.get("sha"),
        content=decode_content(content) if content else None,
        download_url=data.get("download_url")
    )


class GitHubGateway:
    """
    Stateless GitHub REST client.

    Args:
        base_url: API root (default from settings)
        transport: Optional httpx transport, used by tests
    """

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or get_settings().github_api_url).rstrip("/")
        self.transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None
    ) -> Any:
        headers = {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github.v3+json",
        }

        try:
            async with httpx.AsyncClient(base_url=self.base_url, transport=self.transport) as client:
                response = await client.request(method, path, headers=headers, json=json, params=params)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise UpstreamServiceError(
                f"GitHub API error: {status} - {e.response.text}",
                errors=[{"status": status, "path": path}]
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamServiceError(f"GitHub API request failed: {e}") from e

        if not response.content:
            return None
        return response.json()

    async def validate_token(self, token: str) -> bool:
        """Probe /user with the token."""
        try:
            await self._request("GET", "/user", token)
            return True
        except UpstreamServiceError as e:
            logger.warning(f"GitHub token validation failed: {e.message}")
            return False

    async def list_repositories(self, token: str) -> list[GitHubRepo]:
        repos = await self._request(
            "GET", "/user/repos", token,
            params={"sort": "updated", "per_page": 50}
        )
        return [_repo_from_json(r) for r in repos or []]

    async def list_files(self, repo_full_name: str, token: str, path: str = "") -> list[GitHubFile]:
        """List a directory (or a single file) in the repository."""
        data = await self._request("GET", f"/repos/{repo_full_name}/contents/{path}", token)
        if isinstance(data, list):
            return [_file_from_json(item) for item in data]
        return [_file_from_json(data)]

    async def get_file(self, repo_full_name: str, file_path: str, token: str) -> Optional[GitHubFile]:
        """Read a single file. Returns None if it doesn't exist."""
        try:
            data = await self._request("GET", f"/repos/{repo_full_name}/contents/{file_path}", token)
        except UpstreamServiceError as e:
            if e.errors and e.errors[0].get("status") == 404:
                return None
            raise
        if isinstance(data, list):
            raise UpstreamServiceError(f"{file_path} is a directory")
        return _file_from_json(data)

    async def get_file_content(self, repo_full_name: str, file_path: str, token: str) -> str:
        file = await self.get_file(repo_full_name, file_path, token)
        if file is None:
            raise UpstreamServiceError(f"File {file_path} not found in {repo_full_name}")
        return file.content or ""

    async def create_or_update_file(
        self,
        repo_full_name: str,
        file_path: str,
        content: str,
        message: str,
        token: str,
        sha: Optional[str] = None
    ) -> None:
        """
        Write a file as one commit.

        `sha` must be the current blob sha when the file already exists;
        GitHub rejects the write otherwise (conflict detection).
        """
        body = {"message": message, "content": encode_content(content)}
        if sha:
            body["sha"] = sha

        await self._request("PUT", f"/repos/{repo_full_name}/contents/{file_path}", token, json=body)

    async def delete_file(
        self,
        repo_full_name: str,
        file_path: str,
        message: str,
        sha: str,
        token: str
    ) -> None:
        await self._request(
            "DELETE", f"/repos/{repo_full_name}/contents/{file_path}", token,
            json={"message": message, "sha": sha}
        )

    async def create_repository(self, name: str, description: str, private: bool, token: str) -> GitHubRepo:
        data = await self._request(
            "POST", "/user/repos", token,
            json={
                "name": name,
                "description": description,
                "private": private,
                "auto_init": True,
            }
        )
        return _repo_from_json(data)

    async def sync_project(
        self,
        repo_full_name: str,
        files: list[tuple[str, str]],
        token: str
    ) -> SyncReport:
        """
        Write every (path, content) pair, one commit per file, in order.

        A failed file doesn't stop the sync and nothing is rolled back:
        the report tells which paths were written.
        """
        report = SyncReport(repo_full_name=repo_full_name)

        for path, content in files:
            try:
                existing = await self.get_file(repo_full_name, path, token)
                await self.create_or_update_file(
                    repo_full_name,
                    path,
                    content,
                    f"Update {path} via botforge",
                    token,
                    sha=existing.sha if existing else None
                )
                report.outcomes.append(FileSyncOutcome(path=path, success=True))
            except UpstreamServiceError as e:
                logger.warning(f"Sync of {path} to {repo_full_name} failed: {e.message}")
                report.outcomes.append(FileSyncOutcome(path=path, success=False, error=e.message))

        logger.info(
            f"Synced {len(report.outcomes) - len(report.failed)}/{len(report.outcomes)} "
            f"files to {repo_full_name}"
        )
        return report


# Global instance
_github_gateway: Optional[GitHubGateway] = None


def get_github_gateway() -> GitHubGateway:
    """Get or create GitHub gateway singleton."""
    global _github_gateway
    if _github_gateway is None:
        _github_gateway = GitHubGateway()
    return _github_gateway
