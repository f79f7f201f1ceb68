"""
Jerarquía de errores de Flood Core.

Las flows lanzan estas excepciones; el servicio de monitoreo las captura
por dispositivo y la API las traduce a códigos HTTP.
"""

from typing import Any, Dict, List, Optional


class FloodCoreError(Exception):
    """Error base de Flood Core."""
    pass


class SchemaViolationError(FloodCoreError):
    """
    Un valor no cumple el contrato declarado (tipo, rango o enumeración).

    Attributes:
        schema: Nombre del modelo que rechazó el valor
        errors: Lista de errores a nivel de campo ({"field", "message"})
    """

    def __init__(self, schema: str, errors: List[Dict[str, Any]]):
        self.schema = schema
        self.errors = errors
        details = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(f"{schema} rejected: {details}")

    def to_dict(self) -> Dict[str, Any]:
        return {"schema": self.schema, "errors": self.errors}


class TemplateError(FloodCoreError):
    """Plantilla desconocida o referencia a un campo ausente."""
    pass


class CapabilityUnavailableError(FloodCoreError):
    """
    Una capacidad externa (LLM o clima) falló o no respondió a tiempo.
    """

    def __init__(self, capability: str, reason: str):
        self.capability = capability
        self.reason = reason
        super().__init__(f"{capability} capability unavailable: {reason}")


class MalformedCapabilityResponseError(CapabilityUnavailableError):
    """La capacidad respondió, pero la respuesta está vacía o no cumple el esquema."""

    def __init__(self, capability: str, reason: str, violation: Optional[SchemaViolationError] = None):
        super().__init__(capability, reason)
        self.violation = violation


class FlowNotFoundError(FloodCoreError):
    """Excepción cuando no se encuentra una flow registrada."""
    pass
