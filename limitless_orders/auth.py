from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_account.messages import encode_defunct

from .clob_rest import SESSION_COOKIE, RestClient
from .errors import AddressMismatchError, RestError
from .log import get_logger
from .models import UserData

CLIENT_EOA = "eoa"
CLIENT_BASE = "base"
CLIENT_ETHERSPOT = "etherspot"

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthResult:
    session_cookie: str
    profile: dict[str, Any]
    user_data: UserData


def create_auth_headers(account, message: str) -> dict[str, str]:
    signable = encode_defunct(text=message)
    signed = account.sign_message(signable)
    signature = "0x" + bytes(signed.signature).hex()
    recovered = Account.recover_message(signable, signature=signature)
    if recovered.lower() != account.address.lower():
        raise AddressMismatchError(recovered, account.address)
    return {
        "x-account": account.address,
        "x-signing-message": "0x" + message.encode("utf-8").hex(),
        "x-signature": signature,
    }


def authenticate(
    rest: RestClient,
    account,
    *,
    client: str = CLIENT_EOA,
    smart_wallet: str | None = None,
) -> AuthResult:
    if client == CLIENT_ETHERSPOT and not smart_wallet:
        raise ValueError("smart wallet address is required for the etherspot client")
    logger.info("auth_start", client=client, account=account.address)
    message = rest.get_signing_message()
    headers = create_auth_headers(account, message)
    body: dict[str, Any] = {"client": client}
    if smart_wallet:
        body["smartWallet"] = smart_wallet
    resp = rest.login(headers, body)
    session_cookie = resp.cookies.get(SESSION_COOKIE)
    if not session_cookie:
        raise RestError("login response did not set a session cookie")
    rest.set_session_cookie(session_cookie)
    profile = resp.json()
    if not isinstance(profile, dict):
        raise ValueError("unexpected login response shape")
    user_data = UserData.from_profile(profile)
    logger.info("auth_ok", user_id=user_data.user_id, fee_rate_bps=user_data.fee_rate_bps)
    return AuthResult(session_cookie=session_cookie, profile=profile, user_data=user_data)
