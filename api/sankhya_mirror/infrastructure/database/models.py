"""
Modelos de base de datos (ORM).

Las tablas espejo (as_*) no son modelos ORM: se generan como tablas Core a
partir de los descriptores de entidad (ver sankhya_sync.mirror_repository).
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, Boolean
from sqlalchemy.sql import func

from sankhya_mirror.infrastructure.database.session import Base


class ContractModel(Base):
    """
    Contrato (empresa) con acceso al gateway Sankhya.
    Es el directorio de sistemas que procesa el batch.
    """

    __tablename__ = "sync_contracts"

    id_empresa = Column(Integer, primary_key=True, autoincrement=False)
    empresa = Column(String(255), nullable=False, index=True)
    ativo = Column(Boolean, nullable=False, default=True)
    gateway_token = Column(String(255), nullable=True)
    app_key = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    password = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Contract(id_empresa={self.id_empresa}, empresa={self.empresa}, ativo={self.ativo})>"


class SyncLogModel(Base):
    """Una fila por corrida de reconciliación (éxito o falla)."""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    id_sistema = Column(Integer, nullable=False, index=True)
    empresa = Column(String(255), nullable=False)
    tabela = Column(String(100), nullable=False, index=True)
    status = Column(String(10), nullable=False)  # SUCESSO / FALHA
    total_registros = Column(Integer, nullable=False, default=0)
    registros_inseridos = Column(Integer, nullable=False, default=0)
    registros_atualizados = Column(Integer, nullable=False, default=0)
    registros_deletados = Column(Integer, nullable=False, default=0)
    registros_falhos = Column(Integer, nullable=False, default=0)
    duracao_ms = Column(Integer, nullable=False, default=0)
    mensagem_erro = Column(Text, nullable=True)
    data_inicio = Column(DateTime(timezone=True), nullable=False)
    data_fim = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<SyncLog(id={self.id}, id_sistema={self.id_sistema}, tabela={self.tabela}, status={self.status})>"
