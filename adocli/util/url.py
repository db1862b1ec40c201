from __future__ import annotations

from urllib.parse import quote

# Same unreserved set as JavaScript's encodeURIComponent, plus "/".
_SAFE_CHARS = "/-_.!~*'()"


def encode_path_segment(value: str) -> str:
    """
    Percent-encode a value for use inside a URL path.

    Spaces, ``#``, ``&``, ``=``, unicode, etc. are encoded; forward slashes
    are kept so nested names (branches, folders) stay readable.

    Example:
        encode_path_segment("name with spaces/and/slashes")
        -> "name%20with%20spaces/and/slashes"
    """
    return quote(str(value), safe=_SAFE_CHARS)


def encode_query_value(value: str) -> str:
    return quote(str(value), safe="-_.!~*'()")
