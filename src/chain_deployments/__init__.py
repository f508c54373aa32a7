"""
chain-deployments: Python library for ordered, resumable smart contract deployments
"""

from importlib.metadata import PackageNotFoundError, version

from .artifacts import ArtifactStore
from .checkpoints import CheckpointManager
from .deployments import deploy_network, revert_network, verify_network
from .exceptions import (
    ArtifactNotFoundError,
    CheckpointError,
    CheckpointNotFoundError,
    CheckpointUnsupportedError,
    ConfirmationTimeoutError,
    DependencyOrderError,
    DeploymentError,
    FundingUnsupportedError,
    NetworkNotFoundError,
    PlanError,
    RegistryConflictError,
    RegistryDivergenceError,
    RegistryIOError,
    RPCError,
    TransactionFailedError,
    TransactionRevertedError,
    UnitStateError,
    VerificationError,
    VerificationTimeout,
)
from .orchestrator import Orchestrator
from .plan import DeploymentPlan, default_plan, load_plan
from .registry import ArtifactRegistry, merge
from .types import (
    AddressRef,
    DeploymentReport,
    DeploymentUnit,
    UnitKind,
    UnitStatus,
    VerificationRecord,
    VerificationResult,
)
from .verification import VerificationService

try:
    __version__ = version("chain-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "deploy_network",
    "revert_network",
    "verify_network",
    "ArtifactRegistry",
    "ArtifactStore",
    "CheckpointManager",
    "DeploymentPlan",
    "Orchestrator",
    "VerificationService",
    "default_plan",
    "load_plan",
    "merge",
    "AddressRef",
    "DeploymentReport",
    "DeploymentUnit",
    "UnitKind",
    "UnitStatus",
    "VerificationRecord",
    "VerificationResult",
    "DeploymentError",
    "ArtifactNotFoundError",
    "CheckpointError",
    "CheckpointNotFoundError",
    "CheckpointUnsupportedError",
    "ConfirmationTimeoutError",
    "DependencyOrderError",
    "FundingUnsupportedError",
    "NetworkNotFoundError",
    "PlanError",
    "RegistryConflictError",
    "RegistryDivergenceError",
    "RegistryIOError",
    "RPCError",
    "TransactionFailedError",
    "TransactionRevertedError",
    "UnitStateError",
    "VerificationError",
    "VerificationTimeout",
]
