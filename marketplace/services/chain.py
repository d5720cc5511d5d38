"""USDC transfers on the investment chain.

The API only reads receipts (``verify_transfer``); sending a transfer is done
by the investor client with the investor's own key.
"""
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from structlog import get_logger
from web3 import Web3
from web3.exceptions import TransactionNotFound
from web3.logs import DISCARD

from marketplace.config import settings

logger = get_logger()

ERC20_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]

# Typical gas for an ERC-20 transfer on Arbitrum.
TRANSFER_GAS = 50_000


def get_web3(rpc_url: Optional[str] = None) -> Web3:
    rpc = rpc_url or settings.RPC_URL
    return Web3(Web3.HTTPProvider(rpc, request_kwargs={"timeout": settings.REQUEST_TIMEOUT_SECONDS}))


def to_token_units(amount: Decimal, decimals: int = None) -> int:
    decimals = settings.USDC_DECIMALS if decimals is None else decimals
    return int((Decimal(amount) * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN))


def token_contract(w3: Web3, token_address: Optional[str] = None):
    address = Web3.to_checksum_address(token_address or settings.USDC_ADDRESS)
    return w3.eth.contract(address=address, abi=ERC20_ABI)


def send_token_transfer(w3: Web3, private_key: str, recipient: str, units: int) -> str:
    """Sign and broadcast ``transfer(recipient, units)``; returns the transaction hash."""
    account = w3.eth.account.from_key(private_key)
    token = token_contract(w3)
    nonce = w3.eth.get_transaction_count(account.address)

    tx = token.functions.transfer(Web3.to_checksum_address(recipient), units).build_transaction({
        "chainId": settings.CHAIN_ID,
        "from": account.address,
        "gas": TRANSFER_GAS,
        "gasPrice": w3.eth.gas_price,
        "nonce": nonce,
    })
    signed = account.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    logger.info("Token transfer submitted", tx_hash=Web3.to_hex(tx_hash), sender=account.address, units=units)
    return Web3.to_hex(tx_hash)


def wait_for_receipt(w3: Web3, tx_hash: str, timeout: Optional[int] = None):
    return w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout or settings.RECEIPT_TIMEOUT_SECONDS)


def verify_transfer(tx_hash: str, sender: str, amount: Decimal, w3: Optional[Web3] = None) -> bool:
    """True when ``tx_hash`` succeeded and moved at least ``amount`` USDC
    from ``sender`` to the treasury."""
    w3 = w3 or get_web3()
    try:
        receipt = w3.eth.get_transaction_receipt(tx_hash)
    except TransactionNotFound:
        logger.warning("Transfer receipt not found", tx_hash=tx_hash)
        return False

    if receipt["status"] != 1:
        logger.warning("Transfer reverted", tx_hash=tx_hash)
        return False

    token = token_contract(w3)
    expected = to_token_units(amount)
    for event in token.events.Transfer().process_receipt(receipt, errors=DISCARD):
        if event["address"].lower() != token.address.lower():
            continue
        args = event["args"]
        if (
            args["from"].lower() == sender.lower()
            and args["to"].lower() == settings.TREASURY_ADDRESS.lower()
            and args["value"] >= expected
        ):
            return True

    logger.warning("No matching transfer in receipt", tx_hash=tx_hash, sender=sender, expected_units=expected)
    return False
