"""
Repositorio del directorio de contratos (sistemas a sincronizar).
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker
from loguru import logger

from sankhya_mirror.domain.repositories.sync_ports import CompanyEntry, ICompanyDirectory
from sankhya_mirror.infrastructure.database.models import ContractModel
from sankhya_mirror.infrastructure.external.sankhya_sync.token_provider import SankhyaCredentials
from sankhya_mirror.shared.exceptions.domain import EntityNotFoundException


class ContractRepository(ICompanyDirectory):
    """
    Gestiona la tabla sync_contracts.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def list_active(self) -> List[CompanyEntry]:
        """
        Contratos activos ordenados por nombre de empresa.
        """
        query = (
            select(ContractModel)
            .where(ContractModel.ativo.is_(True))
            .order_by(ContractModel.empresa)
        )
        with self._session_factory() as session:
            rows = session.execute(query).scalars().all()

        logger.info(f"[Sync] {len(rows)} empresas activas encontradas")
        return [CompanyEntry(system_id=r.id_empresa, label=r.empresa) for r in rows]

    def get(self, system_id: int) -> CompanyEntry:
        contract = self._get_model(system_id)
        return CompanyEntry(system_id=contract.id_empresa, label=contract.empresa)

    def get_credentials(self, system_id: int) -> SankhyaCredentials:
        """
        Credenciales del gateway del contrato (para el token provider).
        """
        contract = self._get_model(system_id)
        return SankhyaCredentials(
            token=contract.gateway_token or "",
            app_key=contract.app_key or "",
            username=contract.username or "",
            password=contract.password or "",
        )

    def _get_model(self, system_id: int) -> ContractModel:
        with self._session_factory() as session:
            contract = session.get(ContractModel, system_id)
        if contract is None:
            raise EntityNotFoundException("Contrato", system_id)
        return contract
