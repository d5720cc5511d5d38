import pytest

from conftest import OTHER_WALLET, WALLET
from marketplace.core.errors import ApiError
from marketplace.dependencies.wallet import extract_wallet_address, short_address, validate_path_address


def test_bearer_header_wins():
    assert extract_wallet_address(f"Bearer {WALLET}", OTHER_WALLET, OTHER_WALLET) == WALLET


def test_non_wallet_bearer_falls_through_to_header():
    assert extract_wallet_address("Bearer eyJhbGciOi", OTHER_WALLET) == OTHER_WALLET


def test_body_address_is_last_resort():
    assert extract_wallet_address(None, None, WALLET) == WALLET
    assert extract_wallet_address(None, "not-a-wallet", "also-not") is None


def test_validate_path_address_lowercases():
    assert validate_path_address(WALLET) == WALLET.lower()


@pytest.mark.parametrize("address", ["", "0x123", WALLET[2:] + "00", WALLET + "0"])
def test_validate_path_address_rejects(address):
    with pytest.raises(ApiError) as exc_info:
        validate_path_address(address)

    assert exc_info.value.status_code == 400


def test_short_address():
    assert short_address(WALLET) == "0xAbCd...Ef01"
