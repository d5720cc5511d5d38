from typing import Optional

from fastapi import Header

from marketplace.core.errors import ErrorMessage, bad_request

ADDRESS_LENGTH = 42


def extract_wallet_address(
    authorization: Optional[str] = None,
    wallet_header: Optional[str] = None,
    body_address: Optional[str] = None,
) -> Optional[str]:
    """Resolve the caller's wallet from ``Authorization: Bearer 0x...``, then
    ``X-Wallet-Address``, then an ``address`` taken from the request body.

    Nothing here proves the caller controls the wallet.
    """
    if authorization and authorization.startswith("Bearer 0x"):
        return authorization[len("Bearer "):]
    if wallet_header and wallet_header.startswith("0x"):
        return wallet_header
    if body_address and body_address.startswith("0x"):
        return body_address
    return None


async def get_wallet_address(
    authorization: Optional[str] = Header(None),
    x_wallet_address: Optional[str] = Header(None),
) -> Optional[str]:
    return extract_wallet_address(authorization, x_wallet_address)


def is_valid_address(address: Optional[str]) -> bool:
    return bool(address) and address.startswith("0x") and len(address) == ADDRESS_LENGTH


def validate_path_address(address: str) -> str:
    if not is_valid_address(address):
        raise bad_request(ErrorMessage.INVALID_ADDRESS)
    return address.lower()


def short_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"
