"""Commit publishers for update results."""

from .base import CommitPublisher
from .github import GITHUB_API_URL, GitHubPublisher, extract_archive

__all__ = [
    "GITHUB_API_URL",
    "CommitPublisher",
    "GitHubPublisher",
    "extract_archive",
]
