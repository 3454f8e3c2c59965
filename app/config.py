from typing import Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Configuración de la aplicación EVENTOS QR
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Permite campos extra sin error
    )

    # ==============================================
    # APLICACIÓN
    # ==============================================
    app_name: str = "Eventos QR"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    port: int = 8000
    zona_horaria: str = "America/Guayaquil"
    log_level: str = "INFO"
    log_dir: str = "logs"

    # ==============================================
    # BASE DE DATOS
    # ==============================================
    database_url: str = "sqlite:///./eventos.db"

    # ==============================================
    # PROVEEDOR DE IDENTIDAD
    # ==============================================
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    # grupo del proveedor de identidad -> rol de la aplicación
    grupos_roles: Dict[str, str] = {
        "e10a3003-546f-4cd3-8236-d6c46b96c3f2": "admin",
        "31474537-b620-4b3d-b47e-92df19199e08": "financiero",
        "9f5205f6-8328-4393-a6f5-95fd3330315f": "guardiania",
    }

    # ==============================================
    # CORREO (SMTP)
    # ==============================================
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None
    smtp_timeout: int = 30
    destinatarios_reporte: List[str] = []

    # ==============================================
    # VENTAS / CAJA
    # ==============================================
    precio_boleto_default: str = "5"
    limite_boletos_default: str = "0"  # 0 = sin límite
    nombre_evento: str = "Eventos ISTE"

    # ==============================================
    # IMPORTACIÓN MASIVA
    # ==============================================
    lote_correos: int = 150
    pausa_correos_segundos: float = 20.0

    # ==============================================
    # ARCHIVOS
    # ==============================================
    qr_dir: str = "./tmp/qr"
    directorios_limpieza: List[str] = ["./tmp/qr"]

    # ==============================================
    # LIMPIEZA
    # ==============================================
    frase_limpieza_datos: str = "LIMPIAR TODO"
    frase_limpieza_archivos: str = "LIMPIAR ARCHIVOS"

    # ==============================================
    # CORS
    # ==============================================
    allowed_origins: List[str] = ["http://localhost:3000", "http://localhost:8000"]


@lru_cache()
def get_settings() -> Settings:
    """
    Singleton para obtener settings
    """
    return Settings()


def print_settings_summary():
    """
    Imprime un resumen de la configuración al iniciar
    """
    settings = get_settings()

    print("\n" + "="*60)
    print("⚙️  EVENTOS QR - Configuración")
    print("="*60)

    print(f"\n📦 Aplicación:")
    print(f"  • Nombre: {settings.app_name}")
    print(f"  • Entorno: {settings.environment}")
    print(f"  • Debug: {settings.debug}")
    print(f"  • Zona horaria: {settings.zona_horaria}")

    print(f"\n💾 Base de datos:")
    db_url = settings.database_url
    if "@" in db_url:
        # Ocultar password en el print
        print(f"  • {db_url.split('://')[0]}: {db_url.split('@')[1]}")
    else:
        print(f"  • {db_url[:50]}")

    print(f"\n📧 Correo:")
    smtp_ok = "✅" if settings.smtp_host else "❌"
    print(f"  {smtp_ok} SMTP: {settings.smtp_host or 'no configurado'}")
    print(f"  • Lote: {settings.lote_correos} correos | Pausa: {settings.pausa_correos_segundos}s")

    print(f"\n📁 Archivos:")
    print(f"  • QR: {settings.qr_dir}")
    print(f"  • Limpieza: {', '.join(settings.directorios_limpieza)}")

    print("\n" + "="*60 + "\n")


# Instancia global
settings = get_settings()


# Si ejecutas este archivo directamente, muestra el resumen
if __name__ == "__main__":
    print_settings_summary()
