"""
User-facing error messages and upload validation

Messages never expose table names, driver hints or stack traces.
"""

import re
from typing import Any, Optional

from app.core.exceptions import (
    AuthorizationError, BaseCustomException, DatabaseError, NotFoundError, ValidationError
)
from app.core.result import Err, ErrorKind

USER_MESSAGES = {
    "auth/invalid-credentials": "Correo o contraseña incorrectos.",
    "auth/session-expired": "Tu sesión ha expirado. Inicia sesión nuevamente.",
    "auth/not-authenticated": "Debes iniciar sesión para continuar.",
    "network-error": "Error de conexión. Verifica tu internet e intenta de nuevo.",
    "permission-denied": "No tienes permiso para realizar esta acción.",
    "not-found": "El recurso solicitado no fue encontrado.",
    "upload-failed": "Error al subir el archivo. Intenta nuevamente.",
    "update-failed": "Error al actualizar. Intenta nuevamente.",
    "delete-failed": "Error al eliminar. Intenta nuevamente.",
    "create-failed": "Error al crear. Intenta nuevamente.",
    "default": "Ocurrió un error inesperado. Intenta nuevamente.",
}

# PostgREST code for a single-row read that matched nothing
NO_ROWS_CODE = "PGRST116"

_KIND_TO_KEY = {
    ErrorKind.NOT_FOUND: "not-found",
    ErrorKind.PERMISSION_DENIED: "permission-denied",
    ErrorKind.NETWORK: "network-error",
}


def get_user_message(error: Any, fallback_key: str = "default") -> str:
    """Convert any error value into a safe, user-facing message"""
    if isinstance(error, str) and error in USER_MESSAGES:
        return USER_MESSAGES[error]

    if isinstance(error, (ConnectionError, TimeoutError)):
        return USER_MESSAGES["network-error"]

    if isinstance(error, Err):
        key = _KIND_TO_KEY.get(error.kind)
        if key:
            return USER_MESSAGES[key]

    if isinstance(error, BaseCustomException):
        if error.error_code in USER_MESSAGES:
            return USER_MESSAGES[error.error_code]
        if error.status_code in (401, 403):
            return USER_MESSAGES["permission-denied"]
        if error.status_code == 404:
            return USER_MESSAGES["not-found"]

    code = getattr(error, "code", None)
    if code is None and isinstance(error, dict):
        code = error.get("code") or error.get("status")
    if code in (401, 403):
        return USER_MESSAGES["permission-denied"]
    if code in (404, NO_ROWS_CODE):
        return USER_MESSAGES["not-found"]

    return USER_MESSAGES.get(fallback_key, USER_MESSAGES["default"])


MAX_DOCUMENT_SIZE = 10 * 1024 * 1024
MAX_AVATAR_SIZE = 2 * 1024 * 1024

FILE_LIMITS = {
    "document": {
        "max_size": MAX_DOCUMENT_SIZE,
        "types": (
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "image/jpeg",
            "image/png",
        ),
    },
    "avatar": {
        "max_size": MAX_AVATAR_SIZE,
        "types": ("image/jpeg", "image/png", "image/webp"),
    },
}


def validate_file(content_type: Optional[str], size: int, kind: str = "document") -> Optional[str]:
    """Return an error message when the upload breaks the limits for ``kind``"""
    limits = FILE_LIMITS[kind]
    if size > limits["max_size"]:
        max_mb = round(limits["max_size"] / (1024 * 1024))
        return f"El archivo excede el tamaño máximo permitido ({max_mb} MB)."

    if content_type not in limits["types"]:
        accepted = ", ".join(t.split("/")[1].upper() for t in limits["types"])
        return f"Tipo de archivo no permitido. Formatos aceptados: {accepted}."

    return None


def sanitize_file_name(name: str) -> str:
    """Strip path traversal and special characters from a file name"""
    name = re.sub(r"[^a-zA-Z0-9._-]", "_", name)
    name = re.sub(r"\.{2,}", ".", name)
    name = re.sub(r"^\.+", "", name)
    return name[:255]


def raise_for(result: Any, fallback_key: str = "default") -> None:
    """Turn a failed ``Result`` into the matching HTTP exception"""
    if result.success:
        return
    details = {"reason": result.error}
    if result.kind == ErrorKind.VALIDATION:
        raise ValidationError(result.error, details=details, error_code=fallback_key)
    message = get_user_message(result, fallback_key)
    if result.kind == ErrorKind.PERMISSION_DENIED:
        raise AuthorizationError(message, details=details, error_code=fallback_key)
    if result.kind == ErrorKind.NOT_FOUND:
        raise NotFoundError(message, details=details)
    raise DatabaseError(message, details=details, error_code=fallback_key)
