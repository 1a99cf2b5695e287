"""GitHub publisher using the REST git data API.

Publishing a change-set is five calls: one blob per changed file, one tree
layered on the parent commit's tree, one commit, and a fast-forward update of
``refs/heads/<branch>``. The branch contents are fetched as a tarball from
the archive endpoint so no local git checkout is needed.
"""

from __future__ import annotations

import base64
import json
import os
import shutil
import stat
import tarfile
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import IO, Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from freshen.config import GitConfig
from freshen.errors import PublishError
from freshen.observability import StructuredLogger
from freshen.update_result import UpdateResult

GITHUB_API_URL = "https://api.github.com"

Opener = Callable[[Request], Any]


@dataclass(slots=True)
class GitHubPublisher:
    """Publishes update results as a single commit on a GitHub branch."""

    config: GitConfig
    token: str
    api_url: str = GITHUB_API_URL
    opener: Opener = urlopen
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    name: str = "github"

    @property
    def repo_path(self) -> str:
        github = self.config.github
        return f"/repos/{quote(github.owner, safe='')}/{quote(github.repo, safe='')}"

    def latest_commit(self) -> str:
        branch = self._get_branch()
        try:
            return _sha(branch.get("commit"), "latest_commit")
        except PublishError as exc:
            raise exc.with_context(branch=self.config.branch)

    def download(self, target_dir: Path) -> None:
        url = f"{self.api_url}{self.repo_path}/tarball/{quote(self.config.branch, safe='')}"
        self._log("download", "downloading repository", extra={"branch": self.config.branch})
        try:
            with self.opener(self._request("GET", url)) as response:
                extract_archive(response, Path(target_dir))
        except HTTPError as exc:
            raise _http_error(exc, operation="download", url=url) from exc
        except URLError as exc:
            raise PublishError(
                "GitHub archive download failed.",
                hint=str(exc.reason),
                context={"operation": "download", "url": url},
            ) from exc

    def publish(self, result: UpdateResult, root: Path, *, message: str, parent: str) -> str:
        base_tree = self._commit_tree(parent)
        entries = []
        for rel_path in result.to_list():
            self._log("publish", "creating blob", extra={"file": rel_path})
            file_path = Path(root) / rel_path
            entries.append(
                {
                    "path": rel_path,
                    "mode": _file_mode(file_path),
                    "type": "blob",
                    "sha": self._create_blob(file_path),
                }
            )

        self._log("publish", "creating tree")
        tree = self._api("POST", "/git/trees", {"base_tree": base_tree, "tree": entries})
        self._log("publish", "committing")
        commit = self._api(
            "POST",
            "/git/commits",
            {
                "message": message,
                "tree": _sha(tree, "create_tree"),
                "parents": [parent],
                "author": {
                    "name": self.config.author,
                    "email": self.config.email,
                    "date": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
                },
            },
        )
        commit_sha = _sha(commit, "create_commit")
        self._log("publish", "commit created", extra={"commit": commit_sha})

        self._api(
            "PATCH",
            f"/git/refs/heads/{quote(self.config.branch, safe='/')}",
            {"sha": commit_sha, "force": False},
        )
        self._log("publish", "branch updated", extra={"branch": self.config.branch})
        return commit_sha

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get_branch(self) -> dict[str, Any]:
        branch = self._api("GET", f"/branches/{quote(self.config.branch, safe='')}")
        if not isinstance(branch, dict):
            raise PublishError(
                "Unexpected GitHub branch response.",
                context={"operation": "latest_commit", "branch": self.config.branch},
            )
        return branch

    def _commit_tree(self, commit_sha: str) -> str:
        commit = self._api("GET", f"/git/commits/{commit_sha}")
        tree = commit.get("tree") if isinstance(commit, dict) else None
        return _sha(tree, "get_commit")

    def _create_blob(self, path: Path) -> str:
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise PublishError(
                "Changed file could not be read for publishing.",
                hint=str(exc),
                context={"operation": "create_blob", "path": str(path)},
            ) from exc
        blob = self._api(
            "POST",
            "/git/blobs",
            {"content": base64.b64encode(content).decode("ascii"), "encoding": "base64"},
        )
        return _sha(blob, "create_blob")

    def _api(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.api_url}{self.repo_path}{path}"
        request = self._request(method, url, payload)
        try:
            with self.opener(request) as response:
                body = response.read()
        except HTTPError as exc:
            raise _http_error(exc, operation=method, url=url) from exc
        except URLError as exc:
            raise PublishError(
                "GitHub API request failed.",
                hint=str(exc.reason),
                context={"operation": method, "url": url},
            ) from exc
        if not body:
            return {}
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise PublishError(
                "GitHub API returned invalid JSON.",
                context={"operation": method, "url": url},
            ) from exc

    def _request(self, method: str, url: str, payload: dict[str, Any] | None = None) -> Request:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "User-Agent": "freshen",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        return Request(url, data=data, headers=headers, method=method)

    def _log(self, operation: str, message: str, *, extra: dict[str, Any] | None = None) -> None:
        self.logger.log(
            operation=operation,
            task=None,
            phase="publish",
            message=message,
            extra=extra,
        )


def extract_archive(fileobj: IO[bytes], target_dir: Path) -> None:
    """Extract a GitHub tarball stream into *target_dir*, dropping the top-level directory."""
    target_dir.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(fileobj=fileobj, mode="r|gz") as archive:
            for member in archive:
                _extract_member(archive, member, target_dir)
    except tarfile.TarError as exc:
        raise PublishError(
            "Repository archive is not a valid gzip tarball.",
            hint=str(exc),
            context={"operation": "download"},
        ) from exc


def _extract_member(archive: tarfile.TarFile, member: tarfile.TarInfo, target_dir: Path) -> None:
    if ".." in member.name:
        raise PublishError(
            "Repository archive contains an unsafe path.",
            context={"operation": "download", "entry": member.name},
        )
    parts = member.name.strip("/").split("/")
    if len(parts) <= 1:
        return
    target = target_dir.joinpath(*parts[1:])

    if member.isdir():
        target.mkdir(parents=True, exist_ok=True)
    elif member.isfile():
        target.parent.mkdir(parents=True, exist_ok=True)
        source = archive.extractfile(member)
        if source is None:
            return
        with source, target.open("wb") as sink:
            shutil.copyfileobj(source, sink)
        os.chmod(target, member.mode & 0o777)
    elif member.issym() or member.islnk():
        raise PublishError(
            "Repository archive links are not supported.",
            context={"operation": "download", "entry": member.name},
        )


def _file_mode(path: Path) -> str:
    try:
        executable = bool(path.stat().st_mode & stat.S_IXUSR)
    except OSError:
        executable = False
    return "100755" if executable else "100644"


def _sha(payload: Any, operation: str) -> str:
    sha = payload.get("sha") if isinstance(payload, dict) else None
    if not isinstance(sha, str) or not sha:
        raise PublishError("GitHub response has no sha.", context={"operation": operation})
    return sha


def _http_error(exc: HTTPError, *, operation: str, url: str) -> PublishError:
    return PublishError(
        f"GitHub API returned HTTP {exc.code}.",
        hint=str(exc.reason),
        context={"operation": operation, "url": url, "status": str(exc.code)},
    )
