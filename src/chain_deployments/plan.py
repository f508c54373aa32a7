"""Static deployment plans for chain-deployments library."""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .constants import ERC6551_REGISTRY
from .exceptions import PlanError
from .types import AddressRef, DeploymentUnit, UnitKind


class DeploymentPlan:
    """
    Ordered declaration of deployment units.

    Libraries always precede contracts; within each group units deploy in
    declaration order. The plan author lists every unit after its
    dependencies; ordering is validated at deploy time, not sorted.
    """

    def __init__(self) -> None:
        self.libraries: List[DeploymentUnit] = []
        self.contracts: List[DeploymentUnit] = []

    def add_library(
        self, name: str, libraries: Optional[List[str]] = None, artifact: Optional[str] = None
    ) -> DeploymentUnit:
        return self._add(
            DeploymentUnit(
                name=name,
                kind=UnitKind.LIBRARY,
                library_dependencies=list(libraries or []),
                artifact=artifact,
            )
        )

    def add_contract(
        self,
        name: str,
        args: Optional[List[Any]] = None,
        libraries: Optional[List[str]] = None,
        artifact: Optional[str] = None,
    ) -> DeploymentUnit:
        return self._add(
            DeploymentUnit(
                name=name,
                kind=UnitKind.CONTRACT,
                library_dependencies=list(libraries or []),
                constructor_args=list(args or []),
                artifact=artifact,
            )
        )

    def units(self) -> List[DeploymentUnit]:
        return self.libraries + self.contracts

    def names(self) -> List[str]:
        return [unit.name for unit in self.units()]

    def get(self, name: str) -> DeploymentUnit:
        """Return the unit with this name, or raise PlanError."""
        for unit in self.units():
            if unit.name == name:
                return unit
        raise PlanError(f"Unit '{name}' is not part of the plan")

    def __iter__(self) -> Iterator[DeploymentUnit]:
        return iter(self.units())

    def __len__(self) -> int:
        return len(self.libraries) + len(self.contracts)

    def _add(self, unit: DeploymentUnit) -> DeploymentUnit:
        if unit.name in self.names():
            raise PlanError(f"Duplicate unit name '{unit.name}' in plan")
        if unit.kind is UnitKind.LIBRARY:
            self.libraries.append(unit)
        else:
            self.contracts.append(unit)
        return unit


def _parse_arg(value: Any) -> Any:
    # {"ref": "Name"} marks an address reference
    if isinstance(value, dict):
        if set(value) != {"ref"}:
            raise PlanError(f"Unsupported constructor argument object: {value}")
        return AddressRef(value["ref"])
    if isinstance(value, list):
        return [_parse_arg(v) for v in value]
    return value


def _parse_unit_spec(spec: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(spec, str):
        return {"name": spec}
    if "name" not in spec:
        raise PlanError(f"Plan entry without a name: {spec}")
    return spec


def parse_plan(data: Dict[str, Any]) -> DeploymentPlan:
    """
    Build a plan from its JSON representation.

    Format:
        {
          "libraries": ["Errors", {"name": "IP", "libraries": ["Errors"]}],
          "contracts": [
            {"name": "Registry", "libraries": ["Errors"], "args": [{"ref": "Errors"}, 42]}
          ]
        }

    Raises:
        PlanError: If an entry is malformed or a name is duplicated
    """
    plan = DeploymentPlan()

    for raw in data.get("libraries", []):
        spec = _parse_unit_spec(raw)
        plan.add_library(spec["name"], spec.get("libraries"), spec.get("artifact"))

    for raw in data.get("contracts", []):
        spec = _parse_unit_spec(raw)
        args = [_parse_arg(a) for a in spec.get("args", [])]
        plan.add_contract(spec["name"], args, spec.get("libraries"), spec.get("artifact"))

    return plan


def load_plan(file_path: Union[Path, str]) -> DeploymentPlan:
    """Read a JSON plan file, see parse_plan for the format."""
    with open(file_path) as f:
        return parse_plan(json.load(f))


def default_plan() -> DeploymentPlan:
    """The protocol deployment plan: shared libraries, then the core contracts."""
    plan = DeploymentPlan()

    # One by one, in this order, to keep the deployer nonce sequential
    for library in ("AccessPermission", "Errors", "IP", "Licensing", "IPAccountChecker", "Module"):
        plan.add_library(library)

    plan.add_contract(
        "AccessController", libraries=["AccessPermission", "Errors", "IPAccountChecker"]
    )
    plan.add_contract("IPAccountImpl")
    plan.add_contract("ModuleRegistry", libraries=["Errors"])
    plan.add_contract(
        "LicenseRegistry",
        args=["https://example.com/{id}.json"],
        libraries=["Errors", "Licensing"],
    )
    plan.add_contract(
        "IPAccountRegistry",
        args=[ERC6551_REGISTRY, AddressRef("AccessController"), AddressRef("IPAccountImpl")],
    )
    plan.add_contract(
        "IPRecordRegistry",
        args=[AddressRef("ModuleRegistry"), AddressRef("IPAccountRegistry")],
        libraries=["Errors", "Module"],
    )
    plan.add_contract(
        "IPMetadataResolver",
        args=[
            AddressRef("AccessController"),
            AddressRef("IPRecordRegistry"),
            AddressRef("IPAccountRegistry"),
            AddressRef("LicenseRegistry"),
        ],
        libraries=["Errors", "IP"],
    )
    plan.add_contract(
        "RegistrationModule",
        args=[
            AddressRef("AccessController"),
            AddressRef("IPRecordRegistry"),
            AddressRef("IPAccountRegistry"),
            AddressRef("LicenseRegistry"),
            AddressRef("IPMetadataResolver"),
        ],
        libraries=["Errors", "IP", "Module"],
    )
    plan.add_contract("TaggingModule", libraries=["Errors"])
    plan.add_contract("RoyaltyModule", libraries=["Errors"])
    plan.add_contract("DisputeModule", libraries=["Errors"])

    return plan
