"""
AWS Systems Manager Parameter Store service.

This module provides secure parameter retrieval from AWS Parameter Store
with local development support using .env files and python-dotenv.
Third-party API keys (Plaid, Alpha Vantage, LLM gateway) are read here.
"""

import os
from functools import lru_cache
from typing import Any, Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from utils.exceptions import ConfigurationError
from utils.logging import setup_logger

logger = setup_logger(__name__)

# Load .env file for local development
load_dotenv()

_ssm_client = None

DEFAULT_PREFIX = "/saveplus"

# Keys read under the prefix, and whether each is stored as a SecureString
KNOWN_PARAMETERS: Dict[str, bool] = {
    "plaid/client-id": False,
    "plaid/secret": True,
    "plaid/env": False,
    "plaid/client-name": False,
    "coingecko/api-key": True,
    "alpha-vantage/api-key": True,
    "llm/gateway-url": False,
    "llm/api-key": True,
    "llm/model": False,
}


def get_ssm_client():
    """Get or create SSM client with caching."""
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


def parameter_env_var(parameter_name: str) -> str:
    """``/saveplus/plaid/client-id`` → ``SAVEPLUS_PLAID_CLIENT_ID``."""
    return parameter_name.replace("/", "_").replace("-", "_").strip("_").upper()


@lru_cache(maxsize=128)
def get_parameter(parameter_name: str, decrypt: bool = True) -> str | None:
    """
    Get a parameter from AWS Parameter Store with caching.

    Falls back to environment variables for local development.

    Args:
        parameter_name: The name of the parameter to retrieve
        decrypt: Whether to decrypt SecureString parameters

    Returns:
        Parameter value or None if not found
    """
    local_value = os.getenv(parameter_env_var(parameter_name))

    if local_value:
        logger.debug(f"Using local environment variable for {parameter_name}")
        return local_value

    try:
        ssm = get_ssm_client()
        response = ssm.get_parameter(Name=parameter_name, WithDecryption=decrypt)
        value = response["Parameter"]["Value"]

        logger.debug(f"Retrieved parameter {parameter_name} from Parameter Store")
        return value

    except ClientError as e:
        error_code = e.response["Error"]["Code"]

        if error_code == "ParameterNotFound":
            logger.warning(f"Parameter {parameter_name} not found in Parameter Store")
        else:
            logger.error(f"Error retrieving parameter {parameter_name}: {e}")

        return None
    except BotoCoreError as e:
        # No credentials or region, typically local runs without .env values
        logger.error(f"Could not reach Parameter Store for {parameter_name}: {e}")
        return None


class ParameterStoreConfig:
    """
    Configuration class that loads parameters from Parameter Store or environment.

    Provides a clean interface for accessing configuration values with automatic
    fallback and caching.
    """

    def __init__(self, parameter_prefix: str = DEFAULT_PREFIX):
        """
        Initialize configuration with parameter prefix.

        Args:
            parameter_prefix: Prefix for parameter names in Parameter Store
        """
        self.parameter_prefix = parameter_prefix.rstrip("/")
        self._config_cache = {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (will be prefixed with parameter_prefix)
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        if key in self._config_cache:
            return self._config_cache[key]

        parameter_name = f"{self.parameter_prefix}/{key}"
        value = get_parameter(parameter_name)

        if value is None:
            return default

        self._config_cache[key] = value
        return value

    def get_required(self, key: str) -> str:
        """
        Get a required configuration value.

        Raises:
            ConfigurationError: If parameter is not found
        """
        value = self.get(key)
        if value is None:
            raise ConfigurationError(
                f"Required parameter {self.parameter_prefix}/{key} not found"
            )
        return value

    def load_plaid_config(self) -> Dict[str, str]:
        """
        Load Plaid client configuration.

        Raises:
            ConfigurationError: If client id or secret is missing
        """
        plaid_config = {
            "client_id": self.get_required("plaid/client-id"),
            "secret": self.get_required("plaid/secret"),
            "environment": self.get("plaid/env", "sandbox"),
            "client_name": self.get("plaid/client-name", "$ave+"),
        }

        logger.info(
            "Loaded Plaid configuration",
            extra={"plaid_environment": plaid_config["environment"]},
        )
        return plaid_config


# Global config instance
config = ParameterStoreConfig()


def clear_cache():
    """Clear parameter cache. Useful for testing or config updates."""
    get_parameter.cache_clear()
    config._config_cache.clear()
    logger.info("Parameter Store cache cleared")
