"""Signature and hash algorithm identifiers and their JSON representation."""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Mapping, TypeVar, Union

_E = TypeVar("_E", bound=IntEnum)


class SignatureAlgorithm(IntEnum):
    """Signature algorithms known to the protocol."""

    ED25519 = 1
    ED448 = 2

    def __str__(self) -> str:
        return _SIGNATURE_LABELS[self]


class HashAlgorithm(IntEnum):
    """Hash algorithms known to the protocol."""

    NO_HASH_ALGO = 0
    SHA256 = 1
    SHA384 = 2
    SHA512 = 3
    SHAKE256 = 4
    FNV64 = 5
    FNV128 = 6

    def __str__(self) -> str:
        return _HASH_LABELS[self]


_SIGNATURE_LABELS: Mapping[SignatureAlgorithm, str] = {
    SignatureAlgorithm.ED25519: "Ed25519",
    SignatureAlgorithm.ED448: "Ed448",
}

_HASH_LABELS: Mapping[HashAlgorithm, str] = {
    HashAlgorithm.NO_HASH_ALGO: "NoHashAlgo",
    HashAlgorithm.SHA256: "Sha256",
    HashAlgorithm.SHA384: "Sha384",
    HashAlgorithm.SHA512: "Sha512",
    HashAlgorithm.SHAKE256: "Shake256",
    HashAlgorithm.FNV64: "Fnv64",
    HashAlgorithm.FNV128: "Fnv128",
}


def sig_from_str(text: str) -> SignatureAlgorithm:
    """Return the signature algorithm named by a common spelling or its number."""
    for algorithm in SignatureAlgorithm:
        label = str(algorithm)
        if text in (label, label.lower(), label.upper(), str(int(algorithm))):
            return algorithm
    raise ValueError(f"{text} is not a signature algorithm type")


def _to_json(enum_type: type[_E], value: int, kind: str) -> str:
    try:
        member = enum_type(value)
    except ValueError:
        raise ValueError(f"invalid {kind}: {value}") from None
    return json.dumps(str(member))


def _from_json(enum_type: type[_E], data: Union[str, bytes], kind: str) -> _E:
    raw = data.decode("utf-8", errors="replace") if isinstance(data, (bytes, bytearray)) else data
    try:
        name = json.loads(raw)
    except ValueError:
        name = None
    if not isinstance(name, str):
        raise ValueError(f"{kind} should be a string, got {raw}")
    for member in enum_type:
        if str(member) == name:
            return member
    raise ValueError(f"invalid {kind} {json.dumps(name)}")


def signature_to_json(value: int) -> str:
    """Encode a signature algorithm as a JSON string."""
    return _to_json(SignatureAlgorithm, value, "Signature")


def signature_from_json(data: Union[str, bytes]) -> SignatureAlgorithm:
    """Decode a signature algorithm from its JSON string form."""
    return _from_json(SignatureAlgorithm, data, "Signature")


def hash_to_json(value: int) -> str:
    """Encode a hash algorithm as a JSON string."""
    return _to_json(HashAlgorithm, value, "Hash")


def hash_from_json(data: Union[str, bytes]) -> HashAlgorithm:
    """Decode a hash algorithm from its JSON string form."""
    return _from_json(HashAlgorithm, data, "Hash")