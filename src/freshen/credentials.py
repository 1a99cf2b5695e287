"""Credential file loading."""

from __future__ import annotations

import os
from pathlib import Path

from freshen.config import GitHubConfig
from freshen.errors import CredentialsError

CREDENTIALS_DIRECTORY_ENV = "CREDENTIALS_DIRECTORY"
GITHUB_TOKEN_FILENAME = "github_token.txt"


def github_token_path(config: GitHubConfig) -> Path:
    if config.token_file:
        return Path(config.token_file)
    credentials_dir = os.environ.get(CREDENTIALS_DIRECTORY_ENV, "")
    if not credentials_dir:
        raise CredentialsError(
            f"{CREDENTIALS_DIRECTORY_ENV} is not set and no GitHub token_file was given.",
            hint=f"Set {CREDENTIALS_DIRECTORY_ENV} or github.token_file in the git config.",
        )
    return Path(credentials_dir) / GITHUB_TOKEN_FILENAME


def load_github_token(config: GitHubConfig) -> str:
    token_path = github_token_path(config)
    try:
        token = token_path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise CredentialsError(
            "GitHub token file could not be read.",
            hint=str(exc),
            context={"path": str(token_path)},
        ) from exc
    if not token:
        raise CredentialsError("GitHub token file is empty.", context={"path": str(token_path)})
    return token
