"""JWT settings record and its file/environment loader."""
import json
import logging
import os
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/appsettings.json"
SETTINGS_SECTION = "JwtSettings"
ENV_PREFIX = "JWTSETTINGS__"


class ConfigError(Exception):
    """Configuration file is missing, unreadable or invalid."""
    pass


class JWTSettings(BaseModel):
    """
    Settings consumed by the token engine.

    Field names are snake_case; configuration files use the PascalCase
    aliases (``Secret``, ``ExpiryMinutes`` ...).
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )

    secret: str = Field(default="", alias="Secret", description="HMAC shared secret")
    issuer: str = Field(..., alias="Issuer", description="Expected/issued iss claim")
    audience: str = Field(..., alias="Audience", description="Expected/issued aud claim")
    expiry_minutes: int = Field(..., gt=0, alias="ExpiryMinutes", description="Token lifetime in minutes")
    algorithm: str = Field(default="HS256", alias="Algorithm", description="HS256, HS512 or RS256")
    private_key_path: Optional[str] = Field(default=None, alias="PrivateKeyPath", description="PEM private key (RS256)")
    public_key_path: Optional[str] = Field(default=None, alias="PublicKeyPath", description="PEM public key (RS256)")

    def export_dict(self) -> dict:
        """Serialize with the configuration-file key names."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_file(cls, config_path: Optional[str] = None) -> "JWTSettings":
        """
        Load settings from a JSON or YAML file, then overlay environment variables.

        The document must contain a ``JwtSettings`` section. Environment
        variables named ``JwtSettings__<Field>`` (any case) override the
        values read from the file.

        Args:
            config_path: Path to the configuration file. Defaults to
                         ``config/appsettings.json``.

        Returns:
            JWTSettings instance

        Raises:
            ConfigError: If the file cannot be read or the section is invalid
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if not os.path.exists(config_path):
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.endswith((".yaml", ".yml")):
                    document = yaml.safe_load(f) or {}
                else:
                    document = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read configuration file {config_path}: {e}") from e

        section = document.get(SETTINGS_SECTION) if isinstance(document, dict) else None
        if not isinstance(section, dict):
            raise ConfigError(f"{SETTINGS_SECTION} Not Found in {config_path}")

        values = dict(section)
        values.update(_env_overrides())
        logger.debug("Loaded %s from %s", SETTINGS_SECTION, config_path)

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid {SETTINGS_SECTION}: {e}") from e


def _env_overrides() -> dict:
    """Collect ``JwtSettings__*`` environment variables keyed by field alias."""
    aliases = {
        field.alias.upper(): field.alias
        for field in JWTSettings.model_fields.values()
        if field.alias
    }
    overrides = {}
    for name, value in os.environ.items():
        upper = name.upper()
        if not upper.startswith(ENV_PREFIX):
            continue
        alias = aliases.get(upper[len(ENV_PREFIX):])
        if alias is None:
            logger.debug("Ignoring unknown setting override %s", name)
            continue
        overrides[alias] = value
    return overrides
