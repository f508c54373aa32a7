"""Data types and dataclasses for chain-deployments library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from eth_utils import to_hex

from .exceptions import UnitStateError


class UnitKind(Enum):
    """Kind of deployment unit. Value strings are the registry partition names."""

    LIBRARY = "libraries"
    CONTRACT = "contracts"


class UnitStatus(Enum):
    PENDING = "pending"
    DEPLOYED = "deployed"
    FAILED = "failed"


class VerificationResult(Enum):
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already-verified"
    FAILED = "failed"


@dataclass(frozen=True)
class AddressRef:
    """Constructor argument resolved to another unit's address at deploy time."""

    name: str


@dataclass
class DeploymentUnit:
    """One library or contract of a deployment plan."""

    name: str
    kind: UnitKind
    library_dependencies: List[str] = field(default_factory=list)
    constructor_args: List[Any] = field(default_factory=list)
    artifact: Optional[str] = None  # Artifact name when it differs from `name`
    address: Optional[str] = None
    status: UnitStatus = UnitStatus.PENDING
    failure_reason: Optional[str] = None

    @property
    def artifact_name(self) -> str:
        return self.artifact or self.name

    def address_refs(self) -> List[str]:
        """Names referenced through AddressRef constructor arguments, in order."""
        return [arg.name for arg in self.constructor_args if isinstance(arg, AddressRef)]

    def dependencies(self) -> List[str]:
        """Every unit name that must be DEPLOYED before this unit."""
        names: List[str] = []
        for name in self.library_dependencies + self.address_refs():
            if name not in names:
                names.append(name)
        return names

    def mark_deployed(self, address: str) -> None:
        """
        Record the deployed address.

        Raises:
            UnitStateError: If the unit is not PENDING
        """
        if self.status is not UnitStatus.PENDING:
            raise UnitStateError(
                f"Cannot mark {self.name} deployed: status is {self.status.value}"
            )
        if self.address is not None and self.address != address:
            raise UnitStateError(
                f"{self.name} already has address {self.address}, refusing {address}"
            )
        self.address = address
        self.status = UnitStatus.DEPLOYED

    def reset(self) -> None:
        """Return a FAILED unit to PENDING so a rerun can deploy it again."""
        if self.status is UnitStatus.FAILED:
            self.status = UnitStatus.PENDING
            self.failure_reason = None

    def mark_failed(self, reason: str) -> None:
        """Record a failed deployment attempt of a PENDING unit."""
        if self.status is not UnitStatus.PENDING:
            raise UnitStateError(
                f"Cannot mark {self.name} failed: status is {self.status.value}"
            )
        self.status = UnitStatus.FAILED
        self.failure_reason = reason


def to_json_value(value: Any) -> Any:
    """
    Convert a constructor argument to its JSON form.

    Bytes become 0x-prefixed hex and tuples become lists, recursively, so any
    argument accepted by the ABI encoder can be persisted.
    """
    if isinstance(value, (bytes, bytearray)):
        return to_hex(bytes(value))
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    return value


@dataclass
class RegistryEntry:
    """Persisted record of one deployed unit."""

    address: str  # Checksummed address
    constructor_args: List[Any] = field(default_factory=list)  # JSON form
    libraries: Dict[str, str] = field(default_factory=dict)  # Linked library -> address
    encoded_args: str = ""  # ABI-encoded constructor arguments, no 0x prefix

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"address": self.address, "args": self.constructor_args}
        if self.libraries:
            data["libraries"] = self.libraries
        if self.encoded_args:
            data["encodedArgs"] = self.encoded_args
        return data

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "RegistryEntry":
        return cls(
            address=data["address"],
            constructor_args=list(data.get("args", [])),
            libraries=dict(data.get("libraries", {})),
            encoded_args=data.get("encodedArgs", ""),
        )


@dataclass
class ContractArtifact:
    """Compiler output for one contract (hardhat artifact format)."""

    name: str
    source_name: str  # e.g. "contracts/AccessController.sol"
    abi: List[Dict[str, Any]]
    bytecode: str
    # source_name -> library name -> [{"start": byte offset, "length": 20}]
    link_references: Dict[str, Dict[str, List[Dict[str, int]]]] = field(default_factory=dict)

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.source_name}:{self.name}"

    def linked_library_names(self) -> List[str]:
        names: List[str] = []
        for libraries in self.link_references.values():
            for name in libraries:
                if name not in names:
                    names.append(name)
        return names


@dataclass
class VerificationRecord:
    """Outcome of verifying one deployed unit. Reported only, never persisted."""

    name: str
    address: str
    constructor_args: List[Any]
    result: VerificationResult
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not VerificationResult.FAILED


@dataclass
class DeploymentReport:
    """Progress and final outcome of one deployment run."""

    network: str
    deployed: List[Tuple[str, str]] = field(default_factory=list)  # (name, address)
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    failure: Optional[Exception] = None
    failed_unit: Optional[str] = None
    verification: List[VerificationRecord] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    def summary(self) -> str:
        """Human-readable report: units, fatal failure, then verification results."""
        lines = [f"Deployment summary for network '{self.network}'"]
        for name, address in self.deployed:
            lines.append(f"  deployed  {name}: {address}")
        for name, address in self.skipped:
            lines.append(f"  existing  {name}: {address}")

        if self.failure is not None:
            lines.append(f"FATAL: {self.failed_unit or 'run'} failed: {self.failure}")

        if self.verification:
            lines.append("Verification (informational):")
            for record in self.verification:
                line = f"  {record.result.value:<16} {record.name}: {record.address}"
                if record.reason:
                    line += f" ({record.reason})"
                lines.append(line)

        return "\n".join(lines)
