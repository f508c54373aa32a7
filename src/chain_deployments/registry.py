"""Persisted address registry for chain-deployments library."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from eth_utils import to_checksum_address

from .exceptions import RegistryConflictError, RegistryIOError
from .paths import get_registry_paths
from .storage import load_json, save_json
from .types import RegistryEntry, UnitKind, to_json_value

logger = logging.getLogger(__name__)


def merge(
    libraries: Dict[str, RegistryEntry], contracts: Dict[str, RegistryEntry]
) -> Dict[str, Dict[str, str]]:
    """
    Build the flattened view consumed by verification and interaction flows.

    Args:
        libraries: Library name -> registry entry
        contracts: Contract name -> registry entry

    Returns:
        {"contracts": {name: address}, "libraries": {name: address}}
    """
    return {
        "contracts": {name: entry.address for name, entry in contracts.items()},
        "libraries": {name: entry.address for name, entry in libraries.items()},
    }


class ArtifactRegistry:
    """
    Mapping of deployed unit names to addresses and constructor arguments.

    Partitioned into libraries and contracts. Entries are only ever appended;
    an address, once recorded, never changes.
    """

    def __init__(self, output_dir: Optional[Union[Path, str]] = None):
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.libraries: Dict[str, RegistryEntry] = {}
        self.contracts: Dict[str, RegistryEntry] = {}

    @classmethod
    def load(cls, output_dir: Union[Path, str]) -> "ArtifactRegistry":
        """
        Load a registry from disk.

        Args:
            output_dir: Directory holding libraries.json / contracts.json

        Returns:
            Populated registry, or an empty one if nothing was persisted yet

        Raises:
            RegistryIOError: If a registry document is unreadable or malformed
        """
        registry = cls(output_dir)
        libraries_path, contracts_path, _ = get_registry_paths(output_dir)

        for kind, path in ((UnitKind.LIBRARY, libraries_path), (UnitKind.CONTRACT, contracts_path)):
            data = load_json(path)
            if data is None:
                continue
            if not isinstance(data, dict):
                raise RegistryIOError(f"Expected a JSON object in {path}")

            partition = registry._partition(kind)
            for name, raw_entry in data.items():
                try:
                    entry = RegistryEntry.from_json(raw_entry)
                    entry.address = to_checksum_address(entry.address)
                except (KeyError, TypeError, ValueError) as e:
                    raise RegistryIOError(f"Malformed entry '{name}' in {path}: {e}") from e
                partition[name] = entry

        logger.debug(
            "Loaded registry from %s (%d libraries, %d contracts)",
            output_dir,
            len(registry.libraries),
            len(registry.contracts),
        )
        return registry

    def save(self, output_dir: Optional[Union[Path, str]] = None) -> None:
        """
        Persist the full registry atomically.

        Writes libraries.json, contracts.json and the merged all.json.

        Raises:
            RegistryIOError: If no output directory is known or a write fails
        """
        if output_dir is not None:
            self.output_dir = Path(output_dir)
        if self.output_dir is None:
            raise RegistryIOError("Registry has no output directory to save to")

        libraries_path, contracts_path, merged_path = get_registry_paths(self.output_dir)
        save_json({n: e.to_json() for n, e in self.libraries.items()}, libraries_path)
        save_json({n: e.to_json() for n, e in self.contracts.items()}, contracts_path)
        save_json(self.merged(), merged_path)

    def record(
        self,
        name: str,
        address: str,
        constructor_args: Optional[List[Any]] = None,
        kind: UnitKind = UnitKind.CONTRACT,
        libraries: Optional[Dict[str, str]] = None,
        encoded_args: str = "",
    ) -> RegistryEntry:
        """
        Record a deployed unit.

        Re-recording a name with the same address is a no-op. Constructor
        arguments are stored in JSON form (bytes as 0x hex, tuples as lists)
        next to their ABI encoding, which verification submits as is.

        Raises:
            RegistryConflictError: If the name is already recorded with a
                different address, or under the other kind
            ValueError: If address is not a valid hex address
        """
        address = to_checksum_address(address)

        existing = self.get(name)
        if existing is not None:
            existing_kind = UnitKind.LIBRARY if name in self.libraries else UnitKind.CONTRACT
            if existing.address != address:
                raise RegistryConflictError(
                    f"'{name}' is already recorded at {existing.address}, "
                    f"refusing to overwrite with {address}"
                )
            if existing_kind is not kind:
                raise RegistryConflictError(
                    f"'{name}' is already recorded in {existing_kind.value}, not {kind.value}"
                )
            return existing

        entry = RegistryEntry(
            address=address,
            constructor_args=to_json_value(list(constructor_args or [])),
            libraries=dict(libraries or {}),
            encoded_args=encoded_args,
        )
        self._partition(kind)[name] = entry
        return entry

    def get(self, name: str) -> Optional[RegistryEntry]:
        """Entry recorded under a name in either partition, or None."""
        if name in self.libraries:
            return self.libraries[name]
        return self.contracts.get(name)

    def is_deployed(self, name: str) -> bool:
        """Whether a unit of this name is recorded."""
        return self.get(name) is not None

    def address_of(self, name: str) -> Optional[str]:
        """Recorded address of a unit, or None."""
        entry = self.get(name)
        return entry.address if entry is not None else None

    def entries(self) -> List[Tuple[str, UnitKind, RegistryEntry]]:
        """All entries, libraries first, each partition in recording order."""
        return [(n, UnitKind.LIBRARY, e) for n, e in self.libraries.items()] + [
            (n, UnitKind.CONTRACT, e) for n, e in self.contracts.items()
        ]

    def merged(self) -> Dict[str, Dict[str, str]]:
        """Flattened name -> address view, see merge()."""
        return merge(self.libraries, self.contracts)

    def __len__(self) -> int:
        return len(self.libraries) + len(self.contracts)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_deployed(name)

    def _partition(self, kind: UnitKind) -> Dict[str, RegistryEntry]:
        return self.libraries if kind is UnitKind.LIBRARY else self.contracts
