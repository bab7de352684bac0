"""
Pipeline de espejado one-way: Sankhya (CRUDServiceProvider.loadRecords) -> base local.

Este paquete está diseñado para ejecutarse como job (cron / task scheduler)
o disparado desde el API vía thread, nunca dentro del event loop.

Objetivos de diseño:
- Reconciliación por snapshot completo: cada corrida refleja exactamente el
  dataset remoto actual, sin diff contra la corrida anterior.
- Soft delete: lo que desaparece del remoto queda con is_active = false.
- Aislamiento de fallas por registro: un registro malo no descarta el resto.
- Un solo motor genérico parametrizado por descriptores de entidad.
"""
