"""
Access control lookup.

Maps an owner's public key to the private key used to sign URLs. The file
backed variant loads access_control.yml:

    keys:
      christer: ${CHRISTER_PRIVATE_KEY}
      espen: some-private-key
"""

import logging
import os
import string
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

import yaml

logger = logging.getLogger("image_server.access_control")


class AccessControl(ABC):
    @abstractmethod
    def get_private_key(self, public_key: str) -> Optional[str]:
        """Return the private key for ``public_key``, or None when unknown."""
        pass

    def has_public_key(self, public_key: str) -> bool:
        return self.get_private_key(public_key) is not None


class StaticAccessControl(AccessControl):
    def __init__(self, keys: Optional[Mapping[str, str]] = None):
        self._keys: Dict[str, str] = {str(k): str(v) for k, v in (keys or {}).items()}

    def get_private_key(self, public_key: str) -> Optional[str]:
        return self._keys.get(public_key)

    @property
    def public_keys(self):
        return sorted(self._keys)


class FileAccessControl(StaticAccessControl):
    def __init__(self, config_path: str):
        super().__init__()
        self.config_path = config_path

    def load_keys_config(self) -> Dict[str, str]:
        """
        Load and cache the key file.

        Returns:
            Dict of public key -> private key
        """
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                # Substitute environment variables using string.Template.
                template = string.Template(f.read())
                content = template.safe_substitute(os.environ.copy())
                cfg = yaml.safe_load(content) or {}

            keys = cfg.get("keys") or {}
            self._keys = {str(k): str(v) for k, v in keys.items() if v is not None}
            logger.info(f"Loaded {len(self._keys)} public keys from {self.config_path}")

        except FileNotFoundError:
            logger.warning(f"Access control config not found at {self.config_path}")
            self._keys = {}

        except yaml.YAMLError as e:
            logger.error(f"Error parsing access control config: {e}")
            self._keys = {}

        return dict(self._keys)
