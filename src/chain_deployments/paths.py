"""Path management utilities for chain-deployments library."""

from pathlib import Path
from typing import Optional, Union


def get_default_output_dir() -> Path:
    """
    Get default output directory.

    Returns:
        Path to ./out
    """
    return Path.cwd() / "out"


def get_network_output_dir(
    network: str, output_root: Optional[Union[Path, str]] = None
) -> Path:
    """
    Get the per-network output directory.

    Each target network gets its own registry so runs against different
    networks never share state.

    Args:
        network: Network name (e.g. "sepolia")
        output_root: Custom output root (defaults to ./out)

    Returns:
        Path to {output_root}/{network}
    """
    if output_root is None:
        output_root = get_default_output_dir()
    return Path(output_root).absolute() / network


def get_registry_paths(output_dir: Union[Path, str]) -> tuple[Path, Path, Path]:
    """
    Get registry file paths.

    Args:
        output_dir: Directory holding the registry documents

    Returns:
        Tuple of (libraries_path, contracts_path, merged_path)
    """
    output_dir = Path(output_dir)
    return (
        output_dir / "libraries.json",
        output_dir / "contracts.json",
        output_dir / "all.json",
    )


def get_checkpoint_path(output_dir: Union[Path, str]) -> Path:
    return Path(output_dir) / "checkpoint.json"


def get_mock_tokens_path(output_dir: Union[Path, str]) -> Path:
    return Path(output_dir) / "mock" / "tokens.json"
