from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # Provider configuration files
    INFRASTRUCTURE_CONFIG_PATH: str = Field(
        "infrastructure_config.json",
        description="Path to the JSON file listing provider accounts (proxmox, kubernetes, openstack)"
    )
    LEGACY_PROXMOX_CONFIG_PATH: str = Field(
        "proxmox_config.json",
        description="Legacy Proxmox-only config, used when INFRASTRUCTURE_CONFIG_PATH does not exist"
    )
    HARDWARE_INVENTORY_PATH: str = Field(
        "hardware_inventory.json",
        description="Optional JSON file mapping cluster/node names to manufacturer and product name"
    )

    # Backend calls
    PROVIDER_TIMEOUT: float = Field(30.0, gt=0, description="Default timeout in seconds for backend calls")

    # Cache
    HARDWARE_INVENTORY_TTL: int = Field(300, ge=0, description="Cache TTL for the hardware inventory file")
    FLAVOR_CACHE_TTL: int = Field(300, ge=0, description="Cache TTL for OpenStack flavor lookups")

    # HTTP
    CORS_ALLOW_ORIGINS: List[str] = Field(["*"], description="Origins allowed by the CORS middleware")

    # Logging
    LOG_LEVEL: str = Field("INFO", description="Logging level")


settings = Settings()
