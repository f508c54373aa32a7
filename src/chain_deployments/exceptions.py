"""Custom exception classes for chain-deployments library."""

from typing import Optional


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class NetworkNotFoundError(DeploymentError, ValueError):
    """Raised when requested network is not configured."""

    pass


class PlanError(DeploymentError, ValueError):
    """Raised when a deployment plan is malformed (duplicate or unknown units)."""

    pass


class DependencyOrderError(DeploymentError, ValueError):
    """Raised when a unit references a dependency that is not deployed yet."""

    def __init__(self, message: str, dependency: Optional[str] = None):
        super().__init__(message)
        self.dependency = dependency


class UnitStateError(DeploymentError, ValueError):
    """Raised on an invalid deployment unit status transition."""

    pass


class ArtifactNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when a compiled contract artifact cannot be located."""

    pass


class RPCError(DeploymentError, RuntimeError):
    """Raised when the JSON-RPC endpoint returns an error or is unreachable."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class TransactionFailedError(DeploymentError, RuntimeError):
    """Raised when a transaction is rejected, reverted or never confirmed."""

    pass


class TransactionRevertedError(TransactionFailedError):
    """Raised when a mined transaction has a failed receipt status."""

    pass


class ConfirmationTimeoutError(TransactionFailedError, TimeoutError):
    """Raised when a transaction is not confirmed before the deadline."""

    pass


class RegistryIOError(DeploymentError, OSError):
    """Raised when the persisted address registry cannot be read or written."""

    pass


class RegistryConflictError(DeploymentError, ValueError):
    """Raised when a name is re-recorded with a different address."""

    pass


class RegistryDivergenceError(DeploymentError, RuntimeError):
    """Raised when a recorded address holds no code on the target network."""

    pass


class CheckpointError(DeploymentError, RuntimeError):
    """Raised when the network refuses to revert to a checkpoint."""

    pass


class CheckpointUnsupportedError(CheckpointError):
    """Raised when the target network has no snapshot/revert capability."""

    pass


class CheckpointNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when no persisted checkpoint exists."""

    pass


class FundingUnsupportedError(DeploymentError, RuntimeError):
    """Raised when the target network cannot set account balances."""

    pass


class VerificationError(DeploymentError, RuntimeError):
    """Raised by verifiers when a submission is rejected."""

    pass


class VerificationTimeout(VerificationError, TimeoutError):
    """Raised when the verifier does not reach a verdict before the deadline."""

    pass
