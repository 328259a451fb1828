"""
Process-wide handles (ledger store, client, archive mirror, retrieval service)
built once at startup and closed at shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from common.config import CONTRACT_BACKEND, Settings
from ledger.client import LedgerClient
from ledger.deployment import resolve_deployment
from ledger.sql_store import SqlLedgerStore
from ledger.store import LedgerStore
from pipeline.archive.mirror import ArchiveMirror
from pipeline.retrieval.service import RetrievalService

logger = logging.getLogger(__name__)


def open_store(settings: Settings) -> LedgerStore:
    """
    Resolve the ledger identifier and open the configured store.

    Raises:
        DeploymentError: The identifier is unresolved (refuse to start).
    """
    is_contract = settings.ledger_backend == CONTRACT_BACKEND
    deployment = resolve_deployment(
        address=settings.ledger_address,
        metadata_path=settings.deployment_file,
        network_id=settings.network_id,
        require_abi=is_contract,
    )

    if is_contract:
        from ledger.contract_store import ContractLedgerStore
        return ContractLedgerStore.from_endpoint(
            settings.ledger_endpoint,
            deployment.address,
            deployment.abi,
            default_writer=settings.writer_identity,
            request_timeout=settings.read_timeout,
            confirm_timeout=settings.write_timeout,
        )

    return SqlLedgerStore.from_url(
        settings.ledger_endpoint,
        ledger_address=deployment.address,
        default_writer=settings.writer_identity,
        timeout=settings.read_timeout,
    )


@dataclass
class AppContext:
    settings: Settings
    client: LedgerClient
    mirror: ArchiveMirror
    retrieval: RetrievalService

    @classmethod
    def open(cls, settings: Settings, store: Optional[LedgerStore] = None) -> "AppContext":
        store = store if store is not None else open_store(settings)
        client = LedgerClient(
            store,
            writer=settings.writer_identity,
            gas=settings.gas,
            write_timeout=settings.write_timeout,
            read_timeout=settings.read_timeout,
        )
        mirror = ArchiveMirror(
            settings.archive_token,
            url=settings.archive_url,
            timeout=settings.archive_timeout,
            attempts=settings.archive_attempts,
        )
        retrieval = RetrievalService(client, default_n=settings.last_n_size)
        logger.info("AirLedger context opened (backend=%s)", settings.ledger_backend)
        return cls(settings=settings, client=client, mirror=mirror, retrieval=retrieval)

    @property
    def store(self) -> LedgerStore:
        return self.client.store

    def close(self) -> None:
        self.mirror.close()
        self.client.close()
        logger.info("AirLedger context closed")

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
