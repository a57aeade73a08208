from __future__ import annotations

from pydantic import Field, PositiveInt
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class EmulatorSettings(BaseSettings):
    """
    Configuration for booting Android emulators.

    Loads values from the following sources:
    - Environment variables (with prefix EMUBOOT_)
    - Initialization values (e.g., from YAML)
    - .env file
    - Secret files
    """

    model_config = SettingsConfigDict(env_prefix="EMUBOOT_", env_nested_delimiter="__")

    sdk_root: str | None = None  # Android SDK root; ANDROID_SDK_ROOT/ANDROID_HOME when unset
    emulator_path: str | None = None  # Explicit path to the emulator binary
    avd: str | None = None  # Default AVD to boot
    port: PositiveInt | None = None  # Console port; emulator picks one when unset
    headless: bool = False  # Boot without a window (-no-window)
    read_only_emu: bool = False  # Boot the AVD read-only (-read-only)
    gpu: str | None = None  # Explicit -gpu backend, wins over platform defaults
    log_dir: str = "."  # Directory for the per-boot emulator log file
    poll_interval: float = Field(default=1.5, gt=0)  # Boot log polling interval (seconds)
    boot_timeout: float | None = Field(default=None, gt=0)  # Caller deadline for a boot
    list_retries: int = Field(default=10, ge=0)  # Retries for short emulator commands
    list_retry_interval: float = Field(default=1.0, ge=0)  # Pause between retries (seconds)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,  # type: type[BaseSettings]
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Configure the order of configuration sources.

        Loading priority:
        1. Environment variables
        2. Initialization values (e.g., from YAML)
        3. .env file
        4. Secret files
        """
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)
