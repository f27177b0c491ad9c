from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_prefix='FILESERVER_',
        frozen=True,
    )

    app_name: str = 'File Server'
    app_host: str = '0.0.0.0'
    app_port: int = 8080
    storage_root: str = './uploads'
    max_upload_bytes: int = Field(default=32 << 20, ge=1)
    upload_chunk_bytes: int = Field(default=1 << 20, ge=1024)
    reject_symlink_escape: bool = True
    log_level: str = 'info'
    cors_origins: str = ''


settings = Settings()
