"""Unit tests for custom exception classes."""

import pytest

from chain_deployments.exceptions import (
    ArtifactNotFoundError,
    CheckpointError,
    CheckpointNotFoundError,
    CheckpointUnsupportedError,
    ConfirmationTimeoutError,
    DependencyOrderError,
    DeploymentError,
    NetworkNotFoundError,
    RegistryConflictError,
    RegistryIOError,
    RPCError,
    TransactionFailedError,
    TransactionRevertedError,
    VerificationTimeout,
)


class TestExceptionCatching:
    """Test that exceptions can be caught as their base types."""

    def test_catch_dependency_order_as_value_error(self):
        """Test that DependencyOrderError can be caught as ValueError."""
        with pytest.raises(ValueError):
            raise DependencyOrderError("test")

    def test_catch_network_not_found_as_value_error(self):
        """Test that NetworkNotFoundError can be caught as ValueError."""
        with pytest.raises(ValueError):
            raise NetworkNotFoundError("test")

    def test_catch_artifact_not_found_as_file_not_found_error(self):
        """Test that ArtifactNotFoundError can be caught as FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            raise ArtifactNotFoundError("test")

    def test_catch_checkpoint_not_found_as_file_not_found_error(self):
        """Test that a missing checkpoint can be caught as FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            raise CheckpointNotFoundError("test")

    def test_catch_registry_io_error_as_os_error(self):
        """Test that RegistryIOError can be caught as OSError."""
        with pytest.raises(OSError):
            raise RegistryIOError("test")

    def test_catch_confirmation_timeout_as_timeout_and_transaction_failure(self):
        """Test that a confirmation timeout is both a TimeoutError and a transaction failure."""
        with pytest.raises(TimeoutError):
            raise ConfirmationTimeoutError("test")
        with pytest.raises(TransactionFailedError):
            raise ConfirmationTimeoutError("test")

    def test_catch_revert_as_transaction_failure(self):
        """Test that a revert can be caught as a transaction failure."""
        with pytest.raises(TransactionFailedError):
            raise TransactionRevertedError("test")

    def test_catch_unsupported_checkpoint_as_checkpoint_error(self):
        """Test that unsupported snapshots can be caught as CheckpointError."""
        with pytest.raises(CheckpointError):
            raise CheckpointUnsupportedError("test")

    def test_catch_all_as_deployment_error(self):
        """Test that all custom exceptions can be caught as DeploymentError."""
        exceptions = [
            ArtifactNotFoundError("test"),
            CheckpointNotFoundError("test"),
            CheckpointUnsupportedError("test"),
            ConfirmationTimeoutError("test"),
            DependencyOrderError("test"),
            NetworkNotFoundError("test"),
            RegistryConflictError("test"),
            RegistryIOError("test"),
            RPCError("test"),
            VerificationTimeout("test"),
        ]

        for exc in exceptions:
            with pytest.raises(DeploymentError):
                raise exc


class TestExceptionAttributes:
    """Test extra context carried by exceptions."""

    def test_dependency_order_error_names_dependency(self):
        """Test that DependencyOrderError carries the missing dependency."""
        exc = DependencyOrderError("Registry depends on 'Errors'", dependency="Errors")
        assert exc.dependency == "Errors"
        assert str(exc) == "Registry depends on 'Errors'"

    def test_rpc_error_carries_code(self):
        """Test that RPCError keeps the JSON-RPC error code."""
        exc = RPCError("method not found", code=-32601)
        assert exc.code == -32601

    def test_rpc_error_code_defaults_to_none(self):
        """Test that RPCError has no code unless one is given."""
        assert RPCError("boom").code is None
