"""EIP-712 order signing for the Limitless CTF Exchange.

The domain is rebuilt on every call from the caller's ``SigningContext``;
nothing about the verifying contract is cached here, so a signature can
only ever validate against the venue it was produced for.
"""

from __future__ import annotations

from typing import Any, Protocol

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from .errors import AddressMismatchError, MalformedFieldError
from .log import get_logger, short_signature
from .models import SignedOrder, SigningContext, UnsignedOrder
from .validator import is_address

DOMAIN_NAME = "Limitless CTF Exchange"
DOMAIN_VERSION = "1"

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

ORDER_TYPE = [
    {"name": "salt", "type": "uint256"},
    {"name": "maker", "type": "address"},
    {"name": "signer", "type": "address"},
    {"name": "taker", "type": "address"},
    {"name": "tokenId", "type": "uint256"},
    {"name": "makerAmount", "type": "uint256"},
    {"name": "takerAmount", "type": "uint256"},
    {"name": "expiration", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "feeRateBps", "type": "uint256"},
    {"name": "side", "type": "uint8"},
    {"name": "signatureType", "type": "uint8"},
]

logger = get_logger(__name__)


class KeySigner(Protocol):
    """Anything that holds a key: in-process account, hardware wallet, remote signer."""

    @property
    def address(self) -> str: ...

    async def sign_typed_data(self, typed_data: dict[str, Any]) -> bytes | str: ...


class LocalKeySigner:
    def __init__(self, account) -> None:
        self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> "LocalKeySigner":
        return cls(Account.from_key(private_key))

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def account(self):
        return self._account

    async def sign_typed_data(self, typed_data: dict[str, Any]) -> bytes:
        signed = self._account.sign_message(encode_typed_data(full_message=typed_data))
        return bytes(signed.signature)


def build_domain(context: SigningContext) -> dict[str, Any]:
    if not is_address(context.verifying_contract):
        raise MalformedFieldError(
            "verifyingContract", context.verifying_contract, "not a valid address"
        )
    return {
        "name": DOMAIN_NAME,
        "version": DOMAIN_VERSION,
        "chainId": int(context.chain_id),
        "verifyingContract": Web3.to_checksum_address(context.verifying_contract),
    }


def build_typed_data(order: UnsignedOrder, context: SigningContext) -> dict[str, Any]:
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, "Order": ORDER_TYPE},
        "primaryType": "Order",
        "domain": build_domain(context),
        "message": order.typed_message(),
    }


def _signature_hex(signature: bytes | str) -> str:
    if isinstance(signature, str):
        text = signature if signature.startswith("0x") else "0x" + signature
        return text.lower()
    return "0x" + bytes(signature).hex()


def recover_order_signer(order: UnsignedOrder, context: SigningContext, signature: str) -> str:
    encoded = encode_typed_data(full_message=build_typed_data(order, context))
    return Account.recover_message(encoded, signature=signature)


def verify_order_signature(order: UnsignedOrder, context: SigningContext, signature: str) -> bool:
    recovered = recover_order_signer(order, context, signature)
    return recovered.lower() == order.signer.lower()


class OrderSigner:
    def __init__(self, key_signer: KeySigner) -> None:
        self._key_signer = key_signer

    @property
    def address(self) -> str:
        return self._key_signer.address

    async def sign_order(self, order: UnsignedOrder, context: SigningContext) -> str:
        signing_address = self._key_signer.address
        if signing_address.lower() != order.signer.lower():
            logger.error(
                "signer_address_mismatch",
                signing_address=signing_address,
                order_signer=order.signer,
            )
            raise AddressMismatchError(signing_address, order.signer)
        typed_data = build_typed_data(order, context)
        logger.debug(
            "signing_order",
            token_id=order.token_id,
            side=int(order.side),
            chain_id=context.chain_id,
            verifying_contract=typed_data["domain"]["verifyingContract"],
        )
        try:
            raw = await self._key_signer.sign_typed_data(typed_data)
        except Exception:
            logger.exception("order_signing_failed", token_id=order.token_id)
            raise
        signature = _signature_hex(raw)
        logger.info("order_signed", signature=short_signature(signature))
        return signature

    async def sign(self, order: UnsignedOrder, context: SigningContext) -> SignedOrder:
        signature = await self.sign_order(order, context)
        return SignedOrder(
            order=order,
            signature=signature,
            chain_id=int(context.chain_id),
            verifying_contract=context.verifying_contract,
        )
