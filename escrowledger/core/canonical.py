"""
escrowledger: Canonical JSON Encoding — RFC 8785 (JCS)

Every hash in escrowledger (intent hashes, journal chain, ledger state
hash) goes through this module so that two processes holding the same
records compute the same digest.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "escrowledger requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    All values must be JSON-primitive (str, int, float, bool, None, list, dict).
    Dict keys must be strings; callers stringify integer order ids first.
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """
    SHA-256 of the RFC 8785 canonical form.

    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters).
    """
    return hashlib.sha256(canonicalize(obj)).hexdigest()
