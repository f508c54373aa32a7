"""Compiled artifact parsing and bytecode linking for chain-deployments library."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import to_checksum_address

from .exceptions import ArtifactNotFoundError, DependencyOrderError
from .types import ContractArtifact


def parse_artifact(file_path: Path) -> ContractArtifact:
    """
    Parse a hardhat artifact JSON file.

    Args:
        file_path: Path to {ContractName}.json

    Returns:
        ContractArtifact with abi, unlinked bytecode and link references

    Raises:
        ArtifactNotFoundError: If the file is unreadable, malformed or has
            no deployable bytecode
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
        bytecode = data.get("bytecode") or "0x"
        artifact = ContractArtifact(
            name=data["contractName"],
            source_name=data["sourceName"],
            abi=data["abi"],
            bytecode=bytecode,
            link_references=data.get("linkReferences", {}),
        )
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise ArtifactNotFoundError(f"Malformed artifact {file_path}: {e}") from e

    if bytecode == "0x":
        raise ArtifactNotFoundError(f"Artifact {file_path} has no deployable bytecode")
    return artifact


class ArtifactStore:
    """Lookup of compiled artifacts inside a hardhat artifacts directory."""

    def __init__(self, artifacts_dir: Union[Path, str]):
        self.artifacts_dir = Path(artifacts_dir)
        self._cache: Dict[str, ContractArtifact] = {}

    def find(self, name: str) -> Path:
        """
        Locate the artifact file for a contract name.

        Raises:
            ArtifactNotFoundError: If no artifact, or more than one, matches
        """
        matches = [
            p
            for p in self.artifacts_dir.glob(f"**/{name}.json")
            if "build-info" not in p.parts
        ]
        if not matches:
            raise ArtifactNotFoundError(f"No artifact for '{name}' under {self.artifacts_dir}")
        if len(matches) > 1:
            raise ArtifactNotFoundError(
                f"Ambiguous artifact name '{name}': {', '.join(str(m) for m in sorted(matches))}"
            )
        return matches[0]

    def load(self, name: str) -> ContractArtifact:
        """Parse the artifact for a contract name, once per store."""
        if name not in self._cache:
            self._cache[name] = parse_artifact(self.find(name))
        return self._cache[name]

    def build_info(self, name: str) -> Dict[str, Any]:
        """
        Load the build-info that produced an artifact.

        Follows the {Name}.dbg.json pointer written next to each artifact.

        Returns:
            Build-info dictionary (solcVersion, solcLongVersion, input, ...)

        Raises:
            ArtifactNotFoundError: If the debug file or build-info is missing
        """
        artifact_path = self.find(name)
        dbg_path = artifact_path.with_name(f"{name}.dbg.json")
        try:
            with open(dbg_path) as f:
                build_info_path = (dbg_path.parent / json.load(f)["buildInfo"]).resolve()
            with open(build_info_path) as f:
                return json.load(f)
        except (FileNotFoundError, KeyError) as e:
            raise ArtifactNotFoundError(f"No build-info for '{name}': {e}") from e


def link_bytecode(artifact: ContractArtifact, libraries: Dict[str, str]) -> str:
    """
    Splice library addresses into unlinked bytecode.

    Args:
        artifact: Artifact whose bytecode carries link placeholders
        libraries: Library name -> deployed address

    Returns:
        Linked bytecode as 0x-prefixed hex

    Raises:
        DependencyOrderError: If a linked library has no address
    """
    code = artifact.bytecode[2:] if artifact.bytecode.startswith("0x") else artifact.bytecode

    for source_libraries in artifact.link_references.values():
        for library, references in source_libraries.items():
            if library not in libraries:
                raise DependencyOrderError(
                    f"{artifact.name} links library '{library}' which is not deployed",
                    dependency=library,
                )
            address = to_checksum_address(libraries[library])[2:].lower()
            for ref in references:
                # Offsets are in bytes, each byte is two hex characters
                start = ref["start"] * 2
                code = code[:start] + address + code[start + ref["length"] * 2:]

    return "0x" + code


def constructor_input_types(abi: List[Dict[str, Any]]) -> List[str]:
    for item in abi:
        if item.get("type") == "constructor":
            return [canonical_type(i) for i in item.get("inputs", [])]
    return []


def encode_constructor_args(abi: List[Dict[str, Any]], args: List[Any]) -> str:
    """
    ABI-encode constructor arguments.

    Returns:
        Hex string without 0x prefix (empty when there are no arguments)

    Raises:
        ValueError: If the argument count does not match the constructor
    """
    types = constructor_input_types(abi)
    if len(types) != len(args):
        raise ValueError(f"Constructor expects {len(types)} arguments, got {len(args)}")
    if not types:
        return ""
    try:
        return encode(types, list(args)).hex()
    except EncodingError as e:
        raise ValueError(f"Cannot encode constructor arguments {args}: {e}") from e


def encode_deployment(
    artifact: ContractArtifact,
    args: Optional[List[Any]] = None,
    libraries: Optional[Dict[str, str]] = None,
) -> str:
    """Build deployment call data: linked bytecode followed by encoded arguments."""
    return link_bytecode(artifact, libraries or {}) + encode_constructor_args(
        artifact.abi, args or []
    )


def canonical_type(param: Dict[str, Any]) -> str:
    # Tuples are spelled out from their components
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type
