"""
Access token signature generators.

A generator turns a canonical URL and an owner's private key into the
signature clients append to the URL. Generators also name the query
arguments they read tokens from.
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Sequence, Type

from .exceptions import ConfigurationError, IncorrectAccessTokenError

DEFAULT_ARGUMENT_KEY = "accessToken"


class SignatureGenerator(ABC):
    def __init__(self, argument_keys: Optional[Sequence[str]] = None):
        keys = list(argument_keys) if argument_keys else [DEFAULT_ARGUMENT_KEY]
        if not all(isinstance(key, str) and key for key in keys):
            raise ConfigurationError(f"Invalid access token argument keys: {keys!r}")
        self._argument_keys = keys

    @property
    def argument_keys(self) -> List[str]:
        """Query arguments this generator accepts tokens from, in probe order."""
        return list(self._argument_keys)

    @abstractmethod
    def generate_signature(self, argument_key: str, data: str, private_key: str) -> str:
        """
        Compute the signature for ``data``.

        Args:
            argument_key: query argument the token was read from
            data: canonical URL being signed
            private_key: the owner's private key
        """
        pass


class HmacSha256Generator(SignatureGenerator):
    """Lowercase hex HMAC-SHA256 over the URL, keyed by the private key."""

    def generate_signature(self, argument_key: str, data: str, private_key: str) -> str:
        return hmac.new(
            private_key.encode("utf-8"), data.encode("utf-8"), hashlib.sha256
        ).hexdigest()


class MultipleSignatureGenerators(SignatureGenerator):
    """
    Composite generator, one sub-generator per query argument.

    The validator picks the argument present on the request; this class only
    routes to the matching sub-generator.
    """

    def __init__(self, generators: Mapping[str, SignatureGenerator]):
        if not generators:
            raise ConfigurationError("Invalid accessTokenGenerator: no generators configured")

        for argument_key, generator in generators.items():
            if not isinstance(generator, SignatureGenerator):
                raise ConfigurationError(
                    f"Invalid accessTokenGenerator for argument '{argument_key}': "
                    f"{type(generator).__name__}"
                )

        super().__init__(argument_keys=list(generators))
        self._generators: Dict[str, SignatureGenerator] = dict(generators)

    @property
    def generators(self) -> Dict[str, SignatureGenerator]:
        return dict(self._generators)

    def generate_signature(self, argument_key: str, data: str, private_key: str) -> str:
        generator = self._generators.get(argument_key)
        if generator is None:
            raise IncorrectAccessTokenError()
        return generator.generate_signature(argument_key, data, private_key)


GENERATORS: Dict[str, Type[SignatureGenerator]] = {
    "sha256": HmacSha256Generator,
}


def build_signature_generator(
    argument_key: str = DEFAULT_ARGUMENT_KEY,
    generators: Optional[Mapping[str, str]] = None,
) -> SignatureGenerator:
    """
    Build the configured generator.

    Args:
        argument_key: argument for the single-generator setup
        generators: argument -> algorithm name; enables the composite setup

    Raises:
        ConfigurationError: unknown algorithm name
    """
    if not generators:
        return HmacSha256Generator(argument_keys=[argument_key])

    built: Dict[str, SignatureGenerator] = {}
    for key, algorithm in generators.items():
        generator_cls = GENERATORS.get(str(algorithm).lower())
        if generator_cls is None:
            raise ConfigurationError(
                f"Invalid accessTokenGenerator: unknown algorithm '{algorithm}' for '{key}'"
            )
        built[key] = generator_cls(argument_keys=[key])

    return MultipleSignatureGenerators(built)
