"""
Circuit Configuration
=====================
Параметры внешней схемы (circuit), которые должны совпадать байт в байт
с тем, что скомпилировано в prover.

[EXPLICIT] Ни одна функция пакета не читает глобальную конфигурацию
неявно: экземпляр CircuitParams передаётся явно.
"""

from dataclasses import dataclass, field
from typing import Tuple


# BN254 scalar field modulus: every commitment-hash input must be below it
P: int = 21888242871839275222246405745257275088548364400416034343698204186575808495617

SHA2_BLOCK_BITS: int = 512
SHA2_BLOCK_BYTES: int = 64
SHA2_LENGTH_FIELD_BITS: int = 64


@dataclass(frozen=True)
class CircuitParams:
    """Constants the circuit is compiled with."""

    # Максимальная длина padded `header.payload` (12 блоков SHA-256)
    max_padded_unsigned_jwt_len: int = SHA2_BLOCK_BYTES * 12

    # Ширина одного входного провода SHA-256 (бит)
    in_width: int = 8

    # Ширина упаковки для commitment hash (бит), < log2(P)
    pack_width: int = 248

    # Sentinel для скрытых байтов: '='
    mask_value: int = ord("=")

    # name + value + 6 chars (four '"', one ':' and one ',' or '}')
    max_extended_key_claim_len: int = 66
    max_key_claim_name_len: int = 10
    max_key_claim_value_len: int = 50

    # Claims, раскрываемые по умолчанию
    claims_to_reveal: Tuple[str, ...] = field(default_factory=lambda: ("iss", "aud"))

    @property
    def max_sha2_blocks(self) -> int:
        return self.max_padded_unsigned_jwt_len // SHA2_BLOCK_BYTES


@dataclass(frozen=True)
class DevConstants:
    """[DEV] Fixed values for development and tests only. Never use in production."""

    pin: int = 283089722053851751073973683904920435104
    eph_public_key: int = 0x0d7dab358c8dadaa4efa0049a75b07436555b10a368219bb680f70571349d775
    max_epoch: int = 10000
    jwt_randomness: int = 100681567828351849884072155819400689117


# Экземпляры по умолчанию
circuit_params = CircuitParams()
dev_constants = DevConstants()
