"""Public package entrypoint for freshen, the flake input updater."""

from .backends import BuildOutput, BuildTool, NixFlake
from .config import (
    DerivedHashSpec,
    FreshenConfig,
    GitConfig,
    GitHubConfig,
    RunMode,
    TestSpec,
    UpdateScriptSpec,
    UpdateTask,
    parse_config,
    read_config,
)
from .errors import (
    BuildResultMalformed,
    BuildToolError,
    ConfigParseError,
    CredentialsError,
    DependencyCycleError,
    ErrorCode,
    FileIoError,
    FreshenError,
    HashMismatchParseError,
    LockParseError,
    MainBuildFailed,
    MissingInputError,
    PublishError,
    ScriptExecutionError,
    SelfReferenceError,
    TestBuildFailed,
    UnexpectedBuildSuccessError,
    UnknownTaskError,
    WorkingCopyError,
)
from .hash_mismatch import HashMismatch, find_hash_mismatch
from .lockfile import Locks, read_locks
from .observability import StructuredLogger
from .orchestrator import UpdateSpec
from .update_result import UpdateResult

__all__ = [
    "BuildOutput",
    "BuildResultMalformed",
    "BuildTool",
    "BuildToolError",
    "ConfigParseError",
    "CredentialsError",
    "DependencyCycleError",
    "DerivedHashSpec",
    "ErrorCode",
    "FileIoError",
    "FreshenConfig",
    "FreshenError",
    "GitConfig",
    "GitHubConfig",
    "HashMismatch",
    "HashMismatchParseError",
    "LockParseError",
    "Locks",
    "MainBuildFailed",
    "MissingInputError",
    "NixFlake",
    "PublishError",
    "RunMode",
    "ScriptExecutionError",
    "SelfReferenceError",
    "StructuredLogger",
    "TestBuildFailed",
    "TestSpec",
    "UnexpectedBuildSuccessError",
    "UnknownTaskError",
    "UpdateResult",
    "UpdateScriptSpec",
    "UpdateSpec",
    "UpdateTask",
    "WorkingCopyError",
    "find_hash_mismatch",
    "parse_config",
    "read_config",
    "read_locks",
]
