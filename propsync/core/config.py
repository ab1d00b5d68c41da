"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales del importador.
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Todas las variables tienen un default seguro excepto las credenciales:
    - WORDPRESS_PASSWORD: application password del usuario de WordPress
    - CRON_SECRET: token compartido del trigger externo. Vacio = trigger deshabilitado
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Importador de Propiedades XML")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Feed XML
    XML_FEED_URL: str = Field(
        default="https://21online.century21colombia.com/xml/proppit/proppit100.xml"
    )
    FEED_TIMEOUT_SECONDS: float = Field(default=60.0)

    # WordPress
    WORDPRESS_URL: str = Field(default="https://century21laheredad.com")
    WORDPRESS_USER: str = Field(default="marcosg")
    WORDPRESS_PASSWORD: str = Field(default="")
    BACKEND_TIMEOUT_SECONDS: float = Field(default=30.0)
    BACKEND_MAX_RETRIES: int = Field(default=2)
    MEDIA_TIMEOUT_SECONDS: float = Field(default=45.0)
    LISTING_POST_TYPE: str = Field(default="real-estate")
    EXTERNAL_ID_META_KEY: str = Field(default="property_identity")

    # Sincronizacion
    SYNC_BATCH_SIZE: int = Field(default=20)
    SCHEDULER_ENABLED: bool = Field(default=True)

    # Seguridad del trigger externo
    CRON_SECRET: str = Field(default="")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuracion
settings = Settings()
