"""Deployment configuration.

Settings resolve in two layers: built-in defaults, then environment
variables carrying the ``AION_ACCOUNTS__`` prefix (for example
``AION_ACCOUNTS__ALLOW_PBKDF2=true``).
"""

from __future__ import annotations

import functools
import logging
import os
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "AION_ACCOUNTS__"

# Leading byte of every account address.
A0_IDENTIFIER = 0xA0


class AccountsConfig(BaseModel):
    """Settings shared by every account, keystore and wallet operation.

    ``allow_pbkdf2`` gates PBKDF2 on both the encrypt and decrypt paths. The
    Aion kernel only reads scrypt keystores, so it is off by default.
    """

    model_config = ConfigDict(frozen=True)

    network_tag: Annotated[int, Field(ge=0, le=0xFF)] = A0_IDENTIFIER
    allow_pbkdf2: bool = False
    fast_scrypt: bool = True

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: dict[str, str] | None = None,
        **overrides: Any,
    ) -> "AccountsConfig":
        """Build a config from defaults, the environment, then ``overrides``."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for key, raw in env.items():
            if not key.startswith(prefix):
                continue
            name = key[len(prefix):].lower()
            if name not in cls.model_fields:
                logger.warning("ignoring unknown setting %s", key)
                continue
            values[name] = raw
        values.update(overrides)
        # pydantic coerces "true"/"0"/"160" strings into the field types
        return cls.model_validate(values)


@functools.lru_cache(maxsize=1)
def default_config() -> AccountsConfig:
    """Process-wide config read once from the environment."""
    return AccountsConfig.from_env()
