"""
EVENTOS QR - Autorización por roles
app/core/security.py

La autenticación la hace el proveedor de identidad. Aquí solo:
- Validamos el token Bearer que emite (JWT firmado)
- Mapeamos sus grupos a un rol de la aplicación
- Exponemos requiere_rol(...) como dependencia de FastAPI
"""

from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.config import settings
from app.core.errors import UnauthorizedError

ROL_ADMIN = "admin"
ROL_FINANCIERO = "financiero"
ROL_GUARDIANIA = "guardiania"

ROLES = (ROL_ADMIN, ROL_FINANCIERO, ROL_GUARDIANIA)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Usuario:
    email: str
    rol: Optional[str] = None
    grupos: List[str] = field(default_factory=list)

    @property
    def es_admin(self) -> bool:
        return self.rol == ROL_ADMIN


def resolver_rol(grupos) -> Optional[str]:
    """Devuelve el rol del primer grupo reconocido, o None"""
    if not isinstance(grupos, list):
        return None

    for grupo in grupos:
        if not isinstance(grupo, str):
            continue
        rol = settings.grupos_roles.get(grupo)
        if rol:
            return rol

    return None


def decodificar_token(token: str) -> Usuario:
    """
    Valida el JWT y construye el usuario.

    Raises:
        HTTPException 401 si el token no es válido
    """
    credenciales_invalidas = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudo validar la sesión",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise credenciales_invalidas

    email = payload.get("email") or payload.get("preferred_username") or payload.get("sub")
    if not email:
        raise credenciales_invalidas

    grupos = payload.get("groups") or []
    grupos = [g for g in grupos if isinstance(g, str)] if isinstance(grupos, list) else []

    return Usuario(email=email, rol=resolver_rol(grupos), grupos=grupos)


def crear_token(email: str, grupos: List[str] = None) -> str:
    """Emite un token como lo haría el proveedor (útil para pruebas y scripts)"""
    payload = {"sub": email, "email": email, "groups": grupos or []}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


async def obtener_usuario_actual(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Usuario:
    """Dependencia de FastAPI: usuario autenticado o 401"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autenticado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return decodificar_token(credentials.credentials)


def verificar_permiso(usuario: Usuario, roles_permitidos) -> None:
    """Lanza UnauthorizedError si el rol del usuario no está permitido"""
    if roles_permitidos and usuario.rol not in roles_permitidos:
        raise UnauthorizedError()


def requiere_rol(*roles):
    """
    Dependencia que exige uno de los roles indicados.
    Sin roles solo exige estar autenticado.

    Uso:
        @router.get("/limpieza")
        async def estado(usuario: Usuario = Depends(requiere_rol(ROL_ADMIN))):
    """
    async def dependencia(usuario: Usuario = Depends(obtener_usuario_actual)) -> Usuario:
        verificar_permiso(usuario, roles)
        return usuario

    return dependencia
