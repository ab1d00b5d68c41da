"""
Excepciones relacionadas con autenticacion del trigger externo.
"""
from propsync.shared.exceptions.base import AppException


class AuthException(AppException):
    """Excepcion base para errores de autenticacion."""

    def __init__(self, message: str, error_code: str = "AUTH_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=401,
            error_code=error_code,
            details=details
        )


class UnauthorizedException(AuthException):
    """Excepcion para acceso no autorizado."""

    def __init__(self, message: str = "No autorizado"):
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED"
        )
