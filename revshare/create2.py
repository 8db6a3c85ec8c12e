"""Deterministic address helpers mirroring the remote deployment facility."""

from __future__ import annotations

from eth_utils import is_address, keccak, to_bytes, to_canonical_address, to_checksum_address

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_CREATE2_PREFIX = b"\xff"
_ALIAS_OFFSET = 0x1111000000000000000000000000000000001111
_ADDRESS_SPACE = 1 << 160


def is_zero_address(value: object) -> bool:
    """Return ``True`` for ``None``, empty values and the all-zero address.

    Raw 20-byte identities are accepted alongside hex text.
    """

    if not value:
        return True
    if isinstance(value, (bytes, bytearray)):
        return not any(value)
    text = str(value).strip()
    if not text:
        return True
    if not is_address(text):
        return False
    return int(text, 16) == 0


def _as_bytes(value: bytes | str, *, size: int | None, field: str) -> bytes:
    if isinstance(value, str):
        raw = to_bytes(hexstr=value)
    else:
        raw = bytes(value)
    if size is not None and len(raw) != size:
        raise ValueError(f"{field} must be {size} bytes, received {len(raw)}")
    return raw


def derive_salt(namespace: str, name: str) -> bytes:
    """Combine a salt namespace with an artifact's symbolic name.

    The target domain is deliberately not mixed in: the same logical artifact
    lands on the same address on every domain sharing a namespace.
    """

    return keccak(f"{namespace}:{name}".encode("utf-8"))


def derive_address(deployer: bytes | str, salt: bytes | str, init_code: bytes | str) -> str:
    """Return the CREATE2 address ``init_code`` occupies once deployed.

    ``keccak256(0xff ++ deployer ++ salt ++ keccak256(init_code))[12:]``
    """

    deployer_bytes = (
        to_canonical_address(deployer)
        if isinstance(deployer, str)
        else _as_bytes(deployer, size=20, field="deployer")
    )
    salt_bytes = _as_bytes(salt, size=32, field="salt")
    code = _as_bytes(init_code, size=None, field="init_code")
    digest = keccak(_CREATE2_PREFIX + deployer_bytes + salt_bytes + keccak(code))
    return to_checksum_address(digest[12:])


def apply_l1_to_l2_alias(address: str) -> str:
    """Return the L2 identity a deposit sent by ``address`` executes as."""

    value = (int(to_checksum_address(address), 16) + _ALIAS_OFFSET) % _ADDRESS_SPACE
    return to_checksum_address(value.to_bytes(20, "big"))


__all__ = [
    "ZERO_ADDRESS",
    "apply_l1_to_l2_alias",
    "derive_address",
    "derive_salt",
    "is_zero_address",
]
