"""
Transformation whitelist/blacklist policy.

Decides whether a read request may skip access token verification.
"""

from typing import AbstractSet, Iterable, Optional


def is_whitelisted(
    requested: Iterable[str],
    whitelist: Optional[AbstractSet[str]] = None,
    blacklist: Optional[AbstractSet[str]] = None,
) -> bool:
    """
    Return True when ``requested`` transformations may be served without a token.

    Filtering is opt-in: with neither list configured nothing is whitelisted.
    A request without transformations never passes an active filter, a
    blacklisted name always fails, and with a whitelist every requested name
    must be listed.
    """
    whitelist = frozenset(whitelist or ())
    blacklist = frozenset(blacklist or ())

    if not whitelist and not blacklist:
        return False

    names = frozenset(requested)
    if not names:
        return False

    if names & blacklist:
        return False

    if whitelist and not names <= whitelist:
        return False

    return True
