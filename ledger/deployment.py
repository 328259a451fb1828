"""
Deployment metadata resolution.

The ledger identifier (contract address) is taken from LEDGER_ADDRESS when
set, otherwise from a compiled-contract artifact:

    {"abi": [...], "networks": {"<network id>": {"address": "0x..."}}}

There is no fallback: an unresolved identifier raises DeploymentError and the
process refuses to start.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ledger.errors import DeploymentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deployment:
    address: str
    abi: List[Any] = field(default_factory=list)
    source: str = "environment"


def _load_artifact(path: str) -> dict:
    if not os.path.exists(path):
        raise DeploymentError(f"Deployment metadata not found at {path}")
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DeploymentError(f"Deployment metadata at {path} is unreadable: {e}") from e


def resolve_deployment(
    address: Optional[str],
    metadata_path: Optional[str],
    network_id: Optional[str],
    require_abi: bool = False,
) -> Deployment:
    """
    Resolve the ledger address (and ABI, when present) for this process.

    Args:
        address: Explicit identifier; wins over the artifact when set.
        metadata_path: Path to the compiled-contract artifact.
        network_id: Key under "networks" in the artifact.
        require_abi: Fail when no ABI can be loaded (contract backend).

    Raises:
        DeploymentError: If the address (or a required ABI) cannot be resolved.
    """
    artifact: Optional[dict] = None
    if metadata_path and (require_abi or not address):
        artifact = _load_artifact(metadata_path)

    abi = list(artifact.get("abi", [])) if artifact else []
    if require_abi and not abi:
        raise DeploymentError(f"No contract ABI in deployment metadata {metadata_path}")

    if address:
        logger.info("Ledger address taken from environment: %s", address)
        return Deployment(address=address, abi=abi, source="environment")

    if artifact is None:
        raise DeploymentError("LEDGER_ADDRESS is unset and no deployment metadata file is configured")
    if not network_id:
        raise DeploymentError("LEDGER_NETWORK_ID is required to resolve the ledger address")

    networks = artifact.get("networks") or {}
    entry = networks.get(str(network_id))
    if not entry or not entry.get("address"):
        raise DeploymentError(
            f"Network {network_id} has no deployed address in {metadata_path} "
            f"(known networks: {sorted(networks) or 'none'})"
        )

    logger.info("Ledger address resolved for network %s: %s", network_id, entry["address"])
    return Deployment(address=entry["address"], abi=abi, source=metadata_path)
