"""Git synchronization functionality for webgit."""

from .orchestrator import OperationSummary, PullOrchestrator, PushOrchestrator, build_components
from .push import CommitPushEngine
from .repository_info import PushOutcome, PushReport, RepositoryCategory, RepositoryDescriptor
from .submodules import SafeSubmoduleUpdater
from .utils import GitSyncResult, create_git_sync_result
from .workspace import Workspace, classify

__all__ = [
    'OperationSummary',
    'PullOrchestrator',
    'PushOrchestrator',
    'build_components',
    'CommitPushEngine',
    'PushOutcome',
    'PushReport',
    'RepositoryCategory',
    'RepositoryDescriptor',
    'SafeSubmoduleUpdater',
    'GitSyncResult',
    'create_git_sync_result',
    'Workspace',
    'classify',
]
