"""
Contract Service

Reads and writes against the support contract and the profile NFT contract
through web3.py. Writes are signed locally by the operator account and wait
for a single receipt.

Reads are retried on transport errors. Writes are sent exactly once.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog
from eth_account import Account
from eth_account.signers.local import LocalAccount
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TimeExhausted
from web3.logs import DISCARD

from builderfolio.chain.addresses import ZERO_ADDRESS
from builderfolio.chain.contracts import PROFILE_NFT_ABI, SUPPORT_CONTRACT_ABI
from builderfolio.config import settings
from builderfolio.models.support import SupportTransaction

logger = structlog.get_logger(__name__)

# aiohttp connection failures and timeouts are all OSError subclasses.
TRANSIENT_RPC_ERRORS = (OSError,)

_read_retry = retry(
    retry=retry_if_exception_type(TRANSIENT_RPC_ERRORS),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)


class ContractServiceError(Exception):
    """Base exception for contract interactions."""


class ContractNotConfiguredError(ContractServiceError):
    """A contract address or the operator key is missing."""


class TransactionFailedError(ContractServiceError):
    """A transaction reverted or was not mined in time."""


@dataclass(frozen=True)
class OnChainProfileData:
    support_count: str
    supporters: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MintResult:
    tx_hash: str
    token_id: str | None


class ContractService:
    """
    Gateway to the Builderfolio contracts.

    The web3 instance is created in initialize() and released in close().
    Tests may pass a prepared `w3` instead.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        support_contract_address: str | None = None,
        profile_nft_contract_address: str | None = None,
        operator_private_key: str | None = None,
        receipt_timeout_seconds: int | None = None,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        self._rpc_url = rpc_url or settings.rpc_url
        self._support_address = support_contract_address or settings.support_contract_address
        self._nft_address = profile_nft_contract_address or settings.profile_nft_contract_address
        self._operator_key = operator_private_key or settings.operator_private_key
        self._receipt_timeout = receipt_timeout_seconds or settings.tx_receipt_timeout_seconds

        self._w3: AsyncWeb3 | None = w3
        self._operator: LocalAccount | None = None
        self._contracts: dict[str, Any] = {}

        if w3 is not None:
            self._load_operator()

    # ==================== Lifecycle ====================

    async def initialize(self) -> None:
        """Create the web3 provider and load the operator account."""
        if self._w3 is None:
            self._w3 = AsyncWeb3(AsyncHTTPProvider(self._rpc_url))
        self._load_operator()

        try:
            chain_id = await self._w3.eth.chain_id
            logger.info("chain_connected", rpc_url=self._rpc_url, chain_id=chain_id)
        except OSError as e:
            # The node may come up after the API; reads fail per request until then.
            logger.warning("chain_connection_failed", rpc_url=self._rpc_url, error=str(e))

        if not self._support_address:
            logger.warning("support_contract_not_configured")
        if not self._nft_address:
            logger.warning("profile_nft_contract_not_configured")

    def _load_operator(self) -> None:
        if self._operator is not None or not self._operator_key:
            return
        try:
            self._operator = Account.from_key(self._operator_key)
            logger.info("operator_account_loaded", address=self._operator.address)
        except ValueError as e:
            logger.error("operator_account_invalid", error=str(e))

    async def close(self) -> None:
        if self._w3 is not None and hasattr(self._w3.provider, "disconnect"):
            await self._w3.provider.disconnect()
        self._w3 = None
        self._operator = None
        self._contracts.clear()
        logger.info("chain_connection_closed")

    # ==================== Helpers ====================

    def _get_w3(self) -> AsyncWeb3:
        if self._w3 is None:
            raise ContractServiceError("Contract service not initialized. Call initialize() first.")
        return self._w3

    def _contract(self, address: str | None, abi: list[dict[str, Any]], name: str) -> Any:
        if not address:
            raise ContractNotConfiguredError(f"{name} contract address is not configured")
        if address not in self._contracts:
            w3 = self._get_w3()
            self._contracts[address] = w3.eth.contract(
                address=Web3.to_checksum_address(address), abi=abi
            )
        return self._contracts[address]

    def _support_contract(self) -> Any:
        return self._contract(self._support_address, SUPPORT_CONTRACT_ABI, "Support")

    def _nft_contract(self) -> Any:
        return self._contract(self._nft_address, PROFILE_NFT_ABI, "Profile NFT")

    def _get_operator(self) -> LocalAccount:
        if self._operator is None:
            raise ContractNotConfiguredError("No operator account configured")
        return self._operator

    async def _send(self, call: Any, value_wei: int = 0) -> Any:
        """
        Sign and broadcast a contract call, then wait for its receipt.

        Gas and fees come from the node's estimates.

        Raises:
            TransactionFailedError: On revert or receipt timeout
        """
        w3 = self._get_w3()
        operator = self._get_operator()

        tx: dict[str, Any] = await call.build_transaction(
            {
                "from": operator.address,
                "value": value_wei,
                "nonce": await w3.eth.get_transaction_count(operator.address, "pending"),
            }
        )
        signed = operator.sign_transaction(tx)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info("transaction_sent", tx_hash=tx_hash_hex, value_wei=value_wei)

        try:
            receipt = await w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout
            )
        except TimeExhausted as e:
            raise TransactionFailedError(
                f"Transaction {tx_hash_hex} not mined within {self._receipt_timeout}s"
            ) from e

        if receipt["status"] != 1:
            raise TransactionFailedError(f"Transaction {tx_hash_hex} reverted")
        return receipt

    # ==================== Reads ====================

    @_read_retry
    async def _read_support_count(self, address: str) -> int:
        result: int = await self._support_contract().functions.getSupportCount(
            Web3.to_checksum_address(address)
        ).call()
        return result

    @_read_retry
    async def _read_supporters(self, address: str) -> list[str]:
        result: list[str] = await self._support_contract().functions.getSupporters(
            Web3.to_checksum_address(address)
        ).call()
        return result

    async def get_support_count(self, address: str) -> int:
        try:
            return int(await self._read_support_count(address))
        except ContractServiceError:
            raise
        except Exception as e:
            logger.error("support_count_read_failed", address=address, error=str(e))
            raise ContractServiceError(f"Failed to read support count: {e}") from e

    async def get_supporters(self, address: str) -> list[str]:
        """Supporter addresses in lower case, as the frontend compares them."""
        try:
            supporters = await self._read_supporters(address)
        except ContractServiceError:
            raise
        except Exception as e:
            logger.error("supporters_read_failed", address=address, error=str(e))
            raise ContractServiceError(f"Failed to read supporters: {e}") from e
        return [s.lower() for s in supporters]

    async def get_profile_on_chain_data(self, address: str) -> OnChainProfileData:
        support_count = await self.get_support_count(address)
        supporters = await self.get_supporters(address)
        return OnChainProfileData(support_count=str(support_count), supporters=supporters)

    # ==================== Writes ====================

    async def support_creator(
        self,
        supporter: str,
        recipient: str,
        amount: Decimal,
        message_ipfs: str | None = None,
    ) -> SupportTransaction:
        """
        Send a tip of `amount` ETH to `recipient` through the support contract.

        The supporter address is recorded off-chain only; the operator
        account pays and signs.
        """
        contract = self._support_contract()
        recipient = Web3.to_checksum_address(recipient)

        try:
            value_wei = int(Web3.to_wei(amount, "ether"))
            if message_ipfs:
                call = contract.functions.supportCreatorWithMessage(recipient, message_ipfs)
            else:
                call = contract.functions.supportCreator(recipient)
            receipt = await self._send(call, value_wei=value_wei)
        except Exception as e:
            logger.error(
                "support_transaction_failed",
                supporter=supporter,
                recipient=recipient,
                error=str(e),
            )
            if isinstance(e, ContractServiceError):
                raise
            raise ContractServiceError(f"Support transaction failed: {e}") from e

        result = SupportTransaction(
            hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=receipt["blockNumber"],
        )
        logger.info(
            "support_transaction_confirmed",
            tx_hash=result.hash,
            block_number=result.block_number,
            recipient=recipient,
        )
        return result

    async def mint_profile_nft(self, recipient: str) -> MintResult:
        """Mint a profile NFT to `recipient` and report the new token id."""
        contract = self._nft_contract()
        recipient = Web3.to_checksum_address(recipient)

        try:
            receipt = await self._send(contract.functions.mintProfileNFT(recipient))
        except Exception as e:
            logger.error("profile_nft_mint_failed", recipient=recipient, error=str(e))
            if isinstance(e, ContractServiceError):
                raise
            raise ContractServiceError(f"Profile NFT mint failed: {e}") from e

        token_id = self._extract_token_id(contract, receipt, recipient)
        tx_hash = Web3.to_hex(receipt["transactionHash"])
        if token_id is None:
            logger.warning("profile_nft_token_id_missing", tx_hash=tx_hash)
        else:
            logger.info("profile_nft_minted", recipient=recipient, nft_id=token_id)
        return MintResult(tx_hash=tx_hash, token_id=token_id)

    def _extract_token_id(self, contract: Any, receipt: Any, recipient: str) -> str | None:
        """Token id from ProfileNFTMinted, else from the ERC-721 mint Transfer."""
        nft_address = Web3.to_checksum_address(str(contract.address))

        for event in contract.events.ProfileNFTMinted().process_receipt(receipt, errors=DISCARD):
            if Web3.to_checksum_address(event["address"]) == nft_address:
                return str(event["args"]["tokenId"])

        for event in contract.events.Transfer().process_receipt(receipt, errors=DISCARD):
            args = event["args"]
            if (
                Web3.to_checksum_address(event["address"]) == nft_address
                and args["from"] == ZERO_ADDRESS
                and Web3.to_checksum_address(args["to"]) == recipient
            ):
                return str(args["tokenId"])

        return None
