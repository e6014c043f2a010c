"""
Access token verification.

Image URLs are signed with the owner's private key and the signature is
appended as a query argument. The validator rebuilds the URL the client
signed, recomputes the signature and compares. Proxies and clients may
re-encode the query or change the scheme, so several candidate URLs are
tried: the decoded and as-received URI, each with indexed/escaped bracket
variants, and each under the configured protocol rule.
"""

import hmac
import logging
import re
from typing import Iterable, List, Optional

from ..models import TransformationFilterOptions
from .access_policy import is_whitelisted
from .events import Event
from .exceptions import (
    ConfigurationError,
    IncorrectAccessTokenError,
    MissingAccessTokenError,
    UnknownPublicKeyError,
)
from .signature import HmacSha256Generator, SignatureGenerator
from .transformations import TRANSFORMATION_KEY

logger = logging.getLogger("image_server.access_token")

SHORT_URL_HEADER = "X-ImageServer-ShortUrl"

PROTOCOLS = ("incoming", "both", "http", "https")

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:(?=//)")
_TRANSFORMATION_KEY = re.escape(TRANSFORMATION_KEY)
_INDEXED_BRACKETS = re.compile(rf"(?<=[?&])({_TRANSFORMATION_KEY})(\[|%5[Bb])\d+(\]|%5[Dd])=")
_ESCAPED_BRACKETS = re.compile(rf"(?<=[?&])({_TRANSFORMATION_KEY})%5[Bb](\d*)%5[Dd]=")


def strip_argument(uri: str, argument_key: str) -> str:
    """Remove ``argument_key=...`` from the query string of ``uri``."""
    pattern = r"(?<=[?&])" + re.escape(argument_key) + r"=[^&]*&?"
    stripped = re.sub(pattern, "", uri)
    return stripped.rstrip("?&")


def url_variants(uri: str) -> List[str]:
    """
    Encodings of the same URL a client may have signed.

    ``t[0]=`` and ``t[]=`` (escaped or not) sign identically, so indexed
    transformation keys are collapsed and their escaped brackets unescaped.
    Transformations run in arrival order, so dropping the index never lets
    a reordered query match. Other arguments are left untouched.
    """
    variants = [uri]
    collapsed = _INDEXED_BRACKETS.sub(r"\1\2\3=", uri)
    variants.append(collapsed)
    for candidate in (uri, collapsed):
        variants.append(_ESCAPED_BRACKETS.sub(r"\1[\2]=", candidate))
    return _unique(variants)


def with_scheme(uri: str, scheme: str) -> str:
    if _SCHEME_PATTERN.match(uri):
        return _SCHEME_PATTERN.sub(f"{scheme}:", uri, count=1)
    if uri.startswith("//"):
        return f"{scheme}:{uri}"
    return uri


def protocol_candidates(uri: str, protocol: str) -> List[str]:
    if protocol == "incoming":
        return [uri]
    if protocol == "both":
        return _unique([with_scheme(uri, "http"), with_scheme(uri, "https")])
    return [with_scheme(uri, protocol)]


def candidate_urls(uris: Iterable[str], argument_key: str, protocol: str) -> List[str]:
    """Every URL the supplied token may have been computed over, in try order."""
    candidates: List[str] = []
    for uri in uris:
        for variant in url_variants(strip_argument(uri, argument_key)):
            candidates.extend(protocol_candidates(variant, protocol))
    return _unique(candidates)


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


class AccessTokenValidator:
    """
    PRE plugin rejecting requests without a valid access token.

    Args:
        transformations: whitelist/blacklist letting some reads skip the check
        access_token_generator: SignatureGenerator used to compute tokens

    Raises:
        ConfigurationError: the generator is not a SignatureGenerator
    """

    def __init__(
        self,
        transformations: Optional[TransformationFilterOptions] = None,
        access_token_generator: Optional[SignatureGenerator] = None,
    ):
        if access_token_generator is None:
            access_token_generator = HmacSha256Generator()
        if not isinstance(access_token_generator, SignatureGenerator):
            raise ConfigurationError("Invalid accessTokenGenerator")

        self.transformations = transformations or TransformationFilterOptions()
        self.generator = access_token_generator

    def __call__(self, event: Event) -> None:
        self.check_access_token(event)

    def check_access_token(self, event: Event) -> None:
        request = event.request

        if event.response.has_header(SHORT_URL_HEADER):
            logger.debug("Short URL request, skipping access token check")
            return

        if event.is_read and is_whitelisted(
            request.transformation_names,
            self.transformations.whitelist,
            self.transformations.blacklist,
        ):
            logger.debug(
                "Transformations whitelisted, skipping access token check",
                extra={"transformations": sorted(request.transformation_names)},
            )
            return

        argument_key = self._argument_key(event)
        if argument_key is None:
            raise MissingAccessTokenError()

        token = request.get_query(argument_key, "")

        private_key = event.access_control.get_private_key(request.public_key)
        if private_key is None:
            raise UnknownPublicKeyError(request.public_key)

        protocol = event.config.authentication.protocol
        urls = candidate_urls((request.raw_uri, request.uri_as_is), argument_key, protocol)

        for url in urls:
            signature = self.generator.generate_signature(argument_key, url, private_key)
            if hmac.compare_digest(signature.encode("utf-8"), token.encode("utf-8")):
                return

        logger.info(
            "Incorrect access token",
            extra={"public_key": request.public_key, "candidates": len(urls)},
        )
        raise IncorrectAccessTokenError()

    def _argument_key(self, event: Event) -> Optional[str]:
        for key in self.generator.argument_keys:
            if event.request.has_query(key):
                return key
        return None
