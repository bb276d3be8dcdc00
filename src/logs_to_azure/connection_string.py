"""
Application Insights connection string parsing.

A connection string is a ``;`` separated list of ``key=value`` pairs, e.g.
``InstrumentationKey=<uuid>;IngestionEndpoint=https://...``. We only check
its shape here; the Azure Monitor exporter owns what the values mean.
"""

import uuid
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from logs_to_azure.exceptions import ConfigurationError


def _parse_pairs(raw: str) -> dict[str, str]:
    """Split a connection string into lower-cased keys and raw values.

    :param raw: The raw connection string.
    :type raw: str
    :return: Parsed key-value pairs.
    :rtype: dict[str, str]
    :raises ValueError: If a fragment is not a ``key=value`` pair.
    """
    pairs: dict[str, str] = {}
    for fragment in raw.split(";"):
        fragment = fragment.strip()
        if not fragment:
            continue
        if "=" not in fragment:
            raise ValueError("fragment is not a key=value pair")
        key, value = fragment.split("=", 1)
        key = key.strip().lower()
        if not key:
            raise ValueError("Connection string contains an empty key")
        pairs[key] = value.strip()
    return pairs


class ConnectionString(BaseModel):
    instrumentation_key: str = Field(alias="instrumentationkey")
    ingestion_endpoint: Optional[str] = Field(default=None, alias="ingestionendpoint")
    live_endpoint: Optional[str] = Field(default=None, alias="liveendpoint")

    model_config = ConfigDict(extra="allow", frozen=True, hide_input_in_errors=True)

    @field_validator("instrumentation_key")
    @classmethod
    def check_instrumentation_key(cls, v: str) -> str:
        try:
            uuid.UUID(v)
        except ValueError:
            raise ValueError("InstrumentationKey must be a UUID")
        return v

    @field_validator("ingestion_endpoint", "live_endpoint")
    @classmethod
    def check_endpoint(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Endpoint must be an http(s) URL: {v!r}")
        return v

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ConnectionString":
        """Parse and validate a raw connection string.

        :param raw: The connection string, usually from the environment.
        :type raw: str | None
        :return: The parsed connection string.
        :rtype: ConnectionString
        :raises ConfigurationError: If the value is empty or malformed.
        """
        if raw is None or not raw.strip():
            raise ConfigurationError("Connection string is empty")
        try:
            pairs = _parse_pairs(raw)
            return cls.model_validate(pairs)
        except ValidationError as e:
            # The instrumentation key is a secret, keep input values out of the message
            fields = ", ".join(
                ".".join(str(part) for part in error["loc"]) or "connection_string"
                for error in e.errors()
            )
            raise ConfigurationError(f"Invalid connection string: {fields}")
        except ValueError as e:
            raise ConfigurationError(f"Invalid connection string: {str(e)}")
