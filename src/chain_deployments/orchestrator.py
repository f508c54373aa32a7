"""Dependency-ordered deployment of libraries and contracts."""

import logging
from typing import Any, Dict, List

from .artifacts import ArtifactStore, encode_constructor_args, link_bytecode
from .exceptions import (
    DependencyOrderError,
    DeploymentError,
    RegistryDivergenceError,
    RegistryIOError,
    TransactionFailedError,
    UnitStateError,
)
from .plan import DeploymentPlan
from .registry import ArtifactRegistry
from .transactions import TransactionSender
from .types import AddressRef, DeploymentReport, DeploymentUnit, UnitKind, UnitStatus

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Deploys every unit of a plan exactly once, in a dependency-checked order.

    The registry passed in is the only record of deployed addresses: units it
    already holds are skipped, and every new deployment is recorded and
    flushed to disk before the next unit starts.
    """

    def __init__(
        self,
        sender: TransactionSender,
        artifacts: ArtifactStore,
        registry: ArtifactRegistry,
        network: str = "unknown",
        verify_existing: bool = False,
    ):
        self.sender = sender
        self.artifacts = artifacts
        self.registry = registry
        self.network = network
        self.verify_existing = verify_existing
        self.report = DeploymentReport(network=network)

    def run(self, plan: DeploymentPlan) -> DeploymentReport:
        """
        Deploy all libraries, then all contracts, in declaration order.

        Returns:
            DeploymentReport of the run

        Raises:
            DependencyOrderError: If a unit references an undeployed dependency
            TransactionFailedError: If a deployment transaction fails
            RegistryIOError: If the registry cannot be persisted
        """
        self.report = DeploymentReport(network=self.network)
        logger.info("Deploying %d units to network '%s'", len(plan), self.network)
        # Units that failed in an earlier run of the same plan are retried
        for unit in plan:
            unit.reset()

        try:
            for unit in plan.libraries:
                self.deploy_library(unit)
            for unit in plan.contracts:
                self.deploy_contract(unit)
        except DeploymentError as e:
            self.report.failure = e
            logger.error("Deployment run aborted: %s", e)
            raise

        return self.report

    def deploy_library(self, unit: DeploymentUnit) -> str:
        """
        Deploy one library unit, or return its recorded address.

        Raises:
            UnitStateError: If the unit is not a library
        """
        if unit.kind is not UnitKind.LIBRARY:
            raise UnitStateError(f"{unit.name} is not a library")
        return self._deploy(unit)

    def deploy_contract(self, unit: DeploymentUnit) -> str:
        """
        Deploy one contract unit, or return its recorded address.

        Raises:
            UnitStateError: If the unit is not a contract
        """
        if unit.kind is not UnitKind.CONTRACT:
            raise UnitStateError(f"{unit.name} is not a contract")
        return self._deploy(unit)

    def _deploy(self, unit: DeploymentUnit) -> str:
        existing = self.registry.get(unit.name)
        if existing is not None:
            self._check_existing(unit.name, existing.address)
            if unit.status is not UnitStatus.DEPLOYED:
                unit.reset()
                unit.mark_deployed(existing.address)
            self.report.skipped.append((unit.name, existing.address))
            logger.info("Skipping %s, already deployed at %s", unit.name, existing.address)
            return existing.address

        if unit.status is not UnitStatus.PENDING:
            raise UnitStateError(
                f"Cannot deploy {unit.name}: status is {unit.status.value} "
                "and the registry has no record of it"
            )

        self.report.failed_unit = unit.name
        try:
            libraries = self._resolve_libraries(unit)
            args = self._resolve_args(unit)
        except DependencyOrderError as e:
            unit.mark_failed(str(e))
            raise

        logger.info("Deploying %s...", unit.name)
        try:
            artifact = self.artifacts.load(unit.artifact_name)
            for library in artifact.linked_library_names():
                if library not in libraries:
                    libraries[library] = self._require(unit, library)
            encoded_args = encode_constructor_args(artifact.abi, args)
            receipt = self.sender.send(link_bytecode(artifact, libraries) + encoded_args)
        except DeploymentError as e:
            unit.mark_failed(str(e))
            raise
        except ValueError as e:
            unit.mark_failed(str(e))
            raise DeploymentError(f"Cannot encode deployment of {unit.name}: {e}") from e

        address = receipt.get("contractAddress")
        if not address:
            unit.mark_failed("receipt has no contract address")
            raise TransactionFailedError(
                f"Deployment of {unit.name} produced no contract address"
            )

        entry = self.registry.record(
            unit.name, address, args, unit.kind, libraries, encoded_args
        )
        unit.mark_deployed(entry.address)
        self.report.deployed.append((unit.name, entry.address))
        logger.info("Deployed %s to: %s", unit.name, entry.address)

        try:
            self.registry.save()
        except RegistryIOError as e:
            raise RegistryIOError(
                f"{unit.name} is deployed at {entry.address} but the registry "
                f"could not be saved: {e}"
            ) from e
        self.report.failed_unit = None
        return entry.address

    def _require(self, unit: DeploymentUnit, dependency: str) -> str:
        address = self.registry.address_of(dependency)
        if address is None:
            raise DependencyOrderError(
                f"{unit.name} depends on '{dependency}', which is not deployed yet",
                dependency=dependency,
            )
        return address

    def _resolve_libraries(self, unit: DeploymentUnit) -> Dict[str, str]:
        libraries = {}
        for name in unit.library_dependencies:
            if name in self.registry.contracts:
                raise DependencyOrderError(
                    f"{unit.name} links '{name}', which is a contract, not a library",
                    dependency=name,
                )
            libraries[name] = self._require(unit, name)
        return libraries

    def _resolve_args(self, unit: DeploymentUnit) -> List[Any]:
        def resolve(value: Any) -> Any:
            if isinstance(value, AddressRef):
                return self._require(unit, value.name)
            if isinstance(value, list):
                return [resolve(v) for v in value]
            return value

        return [resolve(arg) for arg in unit.constructor_args]

    def _check_existing(self, name: str, address: str) -> None:
        if not self.verify_existing:
            return
        code = self.sender.rpc.get_code(address)
        if code in (None, "0x", "0x0"):
            raise RegistryDivergenceError(
                f"Registry records {name} at {address} but the network has no code there; "
                "the network was probably reverted after it was deployed"
            )


def deploy_units(orchestrator: Orchestrator, units: List[DeploymentUnit]) -> List[str]:
    """Deploy an ad-hoc list of units in the given order."""
    addresses = []
    for unit in units:
        if unit.kind is UnitKind.LIBRARY:
            addresses.append(orchestrator.deploy_library(unit))
        else:
            addresses.append(orchestrator.deploy_contract(unit))
    return addresses
