"""Best-effort source verification of deployed units."""

import copy
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .artifacts import ArtifactStore, encode_constructor_args
from .constants import RPC_TIMEOUT, TENDERLY_API_URL, VERIFICATION_TIMEOUT, VERIFICATION_WORKERS
from .exceptions import DeploymentError, VerificationError, VerificationTimeout
from .registry import ArtifactRegistry
from .types import VerificationRecord, VerificationResult

logger = logging.getLogger(__name__)


@dataclass
class VerificationRequest:
    """Everything a verifier needs to match published source to a deployment."""

    name: str
    address: str
    source_name: str
    compiler_version: str  # solc long version, e.g. "0.8.23+commit.f704f362"
    standard_input: Dict[str, Any]  # solc standard JSON input
    constructor_args: List[Any] = field(default_factory=list)
    encoded_args: str = ""  # ABI-encoded constructor args, no 0x prefix
    libraries: Dict[str, str] = field(default_factory=dict)

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.source_name}:{self.name}"


def classify_message(message: str) -> Optional[VerificationResult]:
    """
    Map a verifier message to a terminal result.

    Returns:
        ALREADY_VERIFIED or VERIFIED for recognised success messages,
        None for anything else
    """
    lowered = message.lower()
    if "already verified" in lowered:
        return VerificationResult.ALREADY_VERIFIED
    if "pass - verified" in lowered or lowered == "verified":
        return VerificationResult.VERIFIED
    return None


def _remaining(deadline: float) -> float:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise VerificationTimeout("timeout")
    return min(remaining, RPC_TIMEOUT)


class EtherscanVerifier:
    """Verifier for Etherscan-compatible explorer APIs."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        chain_id: int,
        poll_interval: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.chain_id = chain_id
        self.poll_interval = poll_interval
        self._session = session or requests.Session()

    def submit(self, request: VerificationRequest, deadline: float) -> VerificationResult:
        """
        Submit standard JSON input, then poll the explorer until a terminal status.

        Raises:
            VerificationError: If the explorer rejects the source
            VerificationTimeout: If the deadline passes while polling
        """
        standard_input = copy.deepcopy(request.standard_input)
        if request.libraries:
            # Linked libraries must be declared for the explorer to rebuild the bytecode
            settings = standard_input.setdefault("settings", {})
            settings["libraries"] = _libraries_by_source(request, standard_input)

        response = self._session.post(
            self.api_url,
            params={"chainid": self.chain_id},
            data={
                "apikey": self.api_key,
                "module": "contract",
                "action": "verifysourcecode",
                "contractaddress": request.address,
                "sourceCode": json.dumps(standard_input),
                "codeformat": "solidity-standard-json-input",
                "contractname": request.fully_qualified_name,
                "compilerversion": f"v{request.compiler_version}",
                "constructorArguements": request.encoded_args,
            },
            timeout=_remaining(deadline),
        )
        body = self._parse(response)

        if body.get("status") != "1":
            message = str(body.get("result") or body.get("message"))
            result = classify_message(message)
            if result is not None:
                return result
            raise VerificationError(message)

        return self._poll(body["result"], deadline)

    def _poll(self, guid: str, deadline: float) -> VerificationResult:
        while True:
            response = self._session.get(
                self.api_url,
                params={
                    "chainid": self.chain_id,
                    "apikey": self.api_key,
                    "module": "contract",
                    "action": "checkverifystatus",
                    "guid": guid,
                },
                timeout=_remaining(deadline),
            )
            body = self._parse(response)
            message = str(body.get("result", ""))

            result = classify_message(message)
            if result is not None:
                return result
            if "pending" not in message.lower():
                raise VerificationError(message)

            _remaining(deadline)
            time.sleep(self.poll_interval)

    @staticmethod
    def _parse(response: requests.Response) -> Dict[str, Any]:
        if response.status_code != 200:
            raise VerificationError(f"Explorer API returned status {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise VerificationError("Explorer API response is not valid JSON") from e


class TenderlyVerifier:
    """Verifier for contracts deployed on a Tenderly fork."""

    def __init__(
        self,
        username: str,
        project: str,
        fork_id: str,
        access_key: str,
        api_url: str = TENDERLY_API_URL,
        session: Optional[requests.Session] = None,
    ):
        self.username = username
        self.project = project
        self.fork_id = fork_id
        self.access_key = access_key
        self.api_url = api_url
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return (
            f"{self.api_url}/account/{self.username}/project/{self.project}"
            f"/fork/{self.fork_id}/verify"
        )

    def submit(self, request: VerificationRequest, deadline: float) -> VerificationResult:
        """Post the sources to the fork's verify endpoint."""
        settings = request.standard_input.get("settings", {})
        optimizer = settings.get("optimizer", {})
        sources = request.standard_input.get("sources", {})

        payload = {
            "root": "",
            "config": {
                "compiler_version": request.compiler_version.split("+")[0],
                "optimizations_used": bool(optimizer.get("enabled", False)),
                "optimizations_count": optimizer.get("runs", 200),
                "evm_version": settings.get("evmVersion", "default"),
            },
            "contracts": [
                {
                    "contractName": request.name,
                    "source": sources.get(request.source_name, {}).get("content", ""),
                    "sourcePath": request.source_name,
                    "networks": {
                        self.fork_id: {"address": request.address, "links": request.libraries}
                    },
                }
            ],
        }

        response = self._session.post(
            self.endpoint,
            json=payload,
            headers={"X-Access-Key": self.access_key},
            timeout=_remaining(deadline),
        )

        if classify_message(response.text) is VerificationResult.ALREADY_VERIFIED:
            return VerificationResult.ALREADY_VERIFIED
        if 200 <= response.status_code < 300:
            return VerificationResult.VERIFIED
        raise VerificationError(f"Tenderly returned status {response.status_code}: {response.text[:200]}")


class VerificationService:
    """
    Submits every deployed unit to a verifier with bounded concurrency.

    Failures are recorded per unit and never raised: verification is
    informational and does not gate a deployment.
    """

    def __init__(
        self,
        verifier,
        artifacts: ArtifactStore,
        max_workers: int = VERIFICATION_WORKERS,
        timeout: float = VERIFICATION_TIMEOUT,
    ):
        self.verifier = verifier
        self.artifacts = artifacts
        self.max_workers = max(1, max_workers)
        self.timeout = timeout

    def prepare(
        self,
        address: str,
        name: str,
        constructor_args: List[Any],
        libraries: Optional[Dict[str, str]] = None,
        artifact: Optional[str] = None,
        encoded_args: str = "",
    ) -> VerificationRequest:
        """
        Collect source, compiler settings and constructor encoding for a unit.

        Recorded ABI-encoded arguments are used as is; they are only
        re-encoded from the artifact ABI when none were recorded.
        """
        artifact_name = artifact or name
        contract = self.artifacts.load(artifact_name)
        build_info = self.artifacts.build_info(artifact_name)

        return VerificationRequest(
            name=contract.name,
            address=address,
            source_name=contract.source_name,
            compiler_version=build_info["solcLongVersion"],
            standard_input=build_info["input"],
            constructor_args=list(constructor_args),
            encoded_args=encoded_args or encode_constructor_args(contract.abi, constructor_args),
            libraries=dict(libraries or {}),
        )

    def verify(
        self,
        address: str,
        name: str,
        constructor_args: Optional[List[Any]] = None,
        libraries: Optional[Dict[str, str]] = None,
        artifact: Optional[str] = None,
        encoded_args: str = "",
    ) -> VerificationRecord:
        """
        Verify one deployed unit.

        Returns:
            VerificationRecord; FAILED records carry the reason
        """
        constructor_args = list(constructor_args or [])
        deadline = time.monotonic() + self.timeout
        reason = None

        try:
            request = self.prepare(
                address, name, constructor_args, libraries, artifact, encoded_args
            )
            result = self.verifier.submit(request, deadline)
        except (VerificationTimeout, requests.Timeout):
            result, reason = VerificationResult.FAILED, "timeout"
        except (DeploymentError, requests.RequestException, KeyError, ValueError, OSError) as e:
            result, reason = VerificationResult.FAILED, str(e) or type(e).__name__
        except Exception as e:
            # Anything else still only fails this unit, never the batch
            result, reason = VerificationResult.FAILED, str(e) or type(e).__name__
            logger.warning("Unexpected error verifying %s at %s", name, address, exc_info=True)

        record = VerificationRecord(
            name=name,
            address=address,
            constructor_args=constructor_args,
            result=result,
            reason=reason,
        )

        if record.ok:
            logger.info("Verification of %s at %s: %s", name, address, result.value)
        else:
            logger.warning("Verification of %s at %s failed: %s", name, address, reason)
        return record

    def verify_all(
        self,
        registry: ArtifactRegistry,
        artifact_names: Optional[Dict[str, str]] = None,
    ) -> List[VerificationRecord]:
        """
        Verify every registry entry.

        Args:
            registry: Populated registry (libraries are verified first)
            artifact_names: Unit name -> artifact name where they differ

        Returns:
            One VerificationRecord per entry, in registry order
        """
        artifact_names = artifact_names or {}
        entries = registry.entries()
        logger.info("Verifying %d units (max %d concurrent)", len(entries), self.max_workers)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(
                    self.verify,
                    entry.address,
                    name,
                    entry.constructor_args,
                    entry.libraries,
                    artifact_names.get(name),
                    entry.encoded_args,
                )
                for name, _, entry in entries
            ]
            return [future.result() for future in futures]


def _libraries_by_source(
    request: VerificationRequest, standard_input: Dict[str, Any]
) -> Dict[str, Dict[str, str]]:
    # solc wants {source file: {library name: address}}
    existing = standard_input.get("settings", {}).get("libraries", {})
    libraries: Dict[str, Dict[str, str]] = {k: dict(v) for k, v in existing.items()}
    sources = standard_input.get("sources", {})

    for library, address in request.libraries.items():
        source = next(
            (s for s in sources if s.rsplit("/", 1)[-1] == f"{library}.sol"),
            request.source_name,
        )
        libraries.setdefault(source, {})[library] = address
    return libraries
