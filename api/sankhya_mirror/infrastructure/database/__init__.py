"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de crear las tablas.
"""
from sankhya_mirror.infrastructure.database.models import (
    ContractModel,
    SyncLogModel
)
