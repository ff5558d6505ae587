"""
Utility functions for blockchain operations.
"""

import base64
import json
import math
import re
from typing import Any, Dict, List, Optional, Union
from decimal import Decimal

import base58
from eth_abi import encode
from eth_utils import (
    to_checksum_address, is_address, to_wei, from_wei,
    function_signature_to_4byte_selector
)

from .types import SupportedChain


HEDERA_ENTITY_ID = re.compile(r'^\d+\.\d+\.\d+(-[a-z]{5})?$')
SOLANA_ADDRESS = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')
EVM_PRIVATE_KEY = re.compile(r'^(0x)?[0-9a-fA-F]{64}$')

SOLANA_SECRET_KEY_LENGTH = 64
WEI_PER_GWEI = 10**9


def validate_address(address: str, chain: SupportedChain) -> bool:
    """Validate blockchain address format"""
    if not address:
        return False
    if chain in (SupportedChain.ETHEREUM, SupportedChain.BASE):
        return is_address(address)
    elif chain == SupportedChain.SOLANA:
        # Solana addresses are base58 encoded and 32-44 chars
        return bool(SOLANA_ADDRESS.match(address))
    elif chain == SupportedChain.HEDERA:
        # shard.realm.num, optionally with a checksum suffix
        return bool(HEDERA_ENTITY_ID.match(address))
    return False


def normalize_address(address: str, chain: SupportedChain) -> str:
    """Normalize address to standard format"""
    if chain in (SupportedChain.ETHEREUM, SupportedChain.BASE):
        return to_checksum_address(address)
    # Other chains don't need normalization
    return address


def validate_private_key(private_key: str) -> bool:
    """Validate EVM private key format"""
    return bool(EVM_PRIVATE_KEY.match(private_key or ""))


def decode_solana_secret(secret: str) -> bytearray:
    """Decode a 64-byte Solana secret key.

    Accepts base64 (the credential-setup format), base58 (wallet exports) and
    the JSON byte array written by ``solana-keygen``.
    """
    secret = secret.strip()
    decoded: Optional[bytes] = None

    if secret.startswith("["):
        try:
            decoded = bytes(json.loads(secret))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Secret key array must hold byte values: {e}") from e
    else:
        try:
            decoded = base64.b64decode(secret, validate=True)
        except ValueError:
            decoded = None
        if decoded is None or len(decoded) != SOLANA_SECRET_KEY_LENGTH:
            decoded = base58.b58decode(secret)

    if len(decoded) != SOLANA_SECRET_KEY_LENGTH:
        raise ValueError(
            f"Solana secret key must be {SOLANA_SECRET_KEY_LENGTH} bytes, got {len(decoded)}"
        )
    return bytearray(decoded)


def wipe(buffer: Optional[bytearray]) -> None:
    """Overwrite key material in place"""
    if buffer is not None:
        for i in range(len(buffer)):
            buffer[i] = 0


def format_wei(wei_value: Union[int, str], unit: str = "ether") -> Decimal:
    """Convert wei to larger unit"""
    return Decimal(str(from_wei(int(wei_value), unit)))


def to_wei_amount(amount: Union[Decimal, float, str], unit: str = "ether") -> int:
    """Convert amount to wei"""
    if isinstance(amount, Decimal):
        amount = str(amount)
    return to_wei(amount, unit)


def wei_to_gwei_ceil(wei_value: int) -> int:
    """Whole gwei, rounded up and never below 1"""
    return max(1, math.ceil(wei_value / WEI_PER_GWEI))


def _find_abi_entry(abi: List[Dict[str, Any]], entry_type: str,
                    name: Optional[str] = None, arity: Optional[int] = None) -> Optional[Dict[str, Any]]:
    for item in abi:
        if item.get("type", "function") != entry_type:
            continue
        if name is not None and item.get("name") != name:
            continue
        if arity is not None and len(item.get("inputs", [])) != arity:
            continue
        return item
    return None


def encode_function_call(function_name: str, params: list,
                         abi: Optional[List[Dict[str, Any]]] = None) -> bytes:
    """Encode selector plus ABI-encoded arguments for a contract call"""
    if not params and not abi:
        return function_signature_to_4byte_selector(f"{function_name}()")
    if abi is None:
        raise ValueError(f"ABI is required to encode arguments for {function_name}")

    func_abi = _find_abi_entry(abi, "function", function_name, len(params))
    if not func_abi:
        raise ValueError(f"Function {function_name} not found in ABI")

    param_types = [item["type"] for item in func_abi.get("inputs", [])]
    selector = function_signature_to_4byte_selector(
        f"{function_name}({','.join(param_types)})"
    )
    return selector + encode(param_types, params)


def encode_constructor_args(abi: Optional[List[Dict[str, Any]]], args: list) -> bytes:
    """ABI-encode constructor arguments (no selector)"""
    if not args:
        return b""
    constructor = _find_abi_entry(abi or [], "constructor")
    if not constructor:
        raise ValueError("Constructor arguments given but ABI has no constructor")
    param_types = [item["type"] for item in constructor.get("inputs", [])]
    return encode(param_types, args)


def is_view_function(abi: List[Dict[str, Any]], function_name: str) -> bool:
    func_abi = _find_abi_entry(abi, "function", function_name)
    return bool(func_abi) and func_abi.get("stateMutability") in ("view", "pure")


def parse_contract_artifact(contract_code: str) -> Dict[str, Any]:
    """Split deployable code into ``abi`` and ``bytecode``.

    ``contract_code`` is either raw hex bytecode or a JSON artifact as
    written by solc, Hardhat or Foundry.
    """
    code = contract_code.strip()
    if code.startswith("{"):
        artifact = json.loads(code)
        bytecode = artifact.get("bytecode")
        if isinstance(bytecode, dict):  # Foundry nests it under "object"
            bytecode = bytecode.get("object")
        return {"abi": artifact.get("abi", []), "bytecode": bytecode}
    return {"abi": None, "bytecode": code}


def metadata_uri(metadata: Optional[Dict[str, Any]]) -> str:
    """Token URI for NFT metadata; inline data URI when no ``uri`` is given"""
    metadata = metadata or {}
    if metadata.get("uri"):
        return metadata["uri"]
    payload = base64.b64encode(json.dumps(metadata, sort_keys=True).encode()).decode()
    return f"data:application/json;base64,{payload}"
