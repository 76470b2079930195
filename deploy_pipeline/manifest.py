import json
import os
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from deploy_pipeline.constants import MANIFEST_JSON_FORMAT
from deploy_pipeline.exceptions import PersistenceFailed
from deploy_pipeline.models import Confirmed, DeploymentRecord, NetworkContext
from deploy_pipeline.utils import _load_json

# Key order is part of the file format; downstream tooling reads these names.
MANIFEST_KEYS = (
    "contractAddress",
    "deployerAddress",
    "network",
    "chainId",
    "blockExplorer",
    "timestamp",
    "txHash",
)


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-01T00:00:00.000Z"""
    moment = moment or datetime.now(timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def explorer_url(template: str, address: str) -> str:
    return template.format(address=address)


def build_record(
    network: NetworkContext,
    result: Confirmed,
    explorer_template: str,
    timestamp: str,
) -> DeploymentRecord:
    return DeploymentRecord(
        contract_address=result.address,
        deployer_address=network.deployer,
        network=network.name,
        chain_id=network.chain_id,
        block_explorer=explorer_url(explorer_template, result.address),
        timestamp=timestamp,
        tx_hash=result.tx_hash,
    )


def manifest_filepath(directory: Path, contract: str, network: str) -> Path:
    return Path(directory) / f"{contract}-{network}.json"


def record_to_dict(record: DeploymentRecord) -> OrderedDict:
    return OrderedDict(
        zip(
            MANIFEST_KEYS,
            (
                record.contract_address,
                record.deployer_address,
                record.network,
                str(record.chain_id),
                record.block_explorer,
                record.timestamp,
                record.tx_hash,
            ),
        )
    )


def record_from_dict(data: dict) -> DeploymentRecord:
    missing = [key for key in MANIFEST_KEYS if key not in data]
    if missing:
        raise ValueError(f"Malformed manifest; missing {', '.join(missing)}")
    return DeploymentRecord(
        contract_address=data["contractAddress"],
        deployer_address=data["deployerAddress"],
        network=data["network"],
        chain_id=int(data["chainId"]),
        block_explorer=data["blockExplorer"],
        timestamp=data["timestamp"],
        tx_hash=data["txHash"],
    )


def write_manifest(record: DeploymentRecord, filepath: Path) -> Path:
    """
    Atomically writes a deployment manifest, replacing any previous one.

    The parent directory is created if it does not exist.
    """
    filepath = Path(filepath)
    temp_filepath = filepath.with_name(f".{filepath.name}.{os.getpid()}.tmp")
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_filepath, "w") as file:
            json.dump(record_to_dict(record), file, **MANIFEST_JSON_FORMAT)
            file.write("\n")
            file.flush()
            os.fsync(file.fileno())
        os.replace(temp_filepath, filepath)
    except (OSError, TypeError, ValueError) as error:
        try:
            temp_filepath.unlink()
        except OSError:
            pass  # nothing was written
        raise PersistenceFailed(
            f"Could not write manifest to {filepath}: {error}", cause=error
        ) from error
    return filepath


def read_manifest(filepath: Path) -> DeploymentRecord:
    return record_from_dict(_load_json(Path(filepath)))


def list_manifests(directory: Path) -> List[Tuple[Path, DeploymentRecord]]:
    """Returns the readable manifests in ``directory`` with their paths, sorted by file name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    records = list()
    for filepath in sorted(directory.glob("*.json")):
        try:
            records.append((filepath, read_manifest(filepath)))
        except (ValueError, KeyError, TypeError):
            continue  # not a manifest
    return records
