"""MemoryVault smart-contract ledger over an EVM JSON-RPC endpoint.

Reads are ``eth_call`` views against the latest block; writes are
``storeMemoryFor`` transactions signed by the agent key, so the signer (the
record's writer) and the memory owner are separate addresses.
"""

from __future__ import annotations

import logging

from eth_account import Account
from web3 import AsyncHTTPProvider
from web3 import AsyncWeb3

from memvault.config import LedgerConfig

logger = logging.getLogger(__name__)

_MEMORY_TUPLE = {
    "components": [
        {"internalType": "uint256", "name": "timestamp", "type": "uint256"},
        {"internalType": "address", "name": "writer", "type": "address"},
        {"internalType": "string", "name": "content", "type": "string"},
    ],
    "internalType": "struct MemoryVault.Memory",
    "name": "",
    "type": "tuple",
}

_USER = {"internalType": "address", "name": "user", "type": "address"}
_TOPIC = {"internalType": "bytes32", "name": "topic", "type": "bytes32"}

VAULT_ABI: list[dict] = [
    {
        "anonymous": False,
        "inputs": [
            {**_USER, "indexed": True},
            {**_TOPIC, "indexed": True},
            {"indexed": False, "internalType": "uint256", "name": "index", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "writer", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "timestamp", "type": "uint256"},
        ],
        "name": "MemoryStored",
        "type": "event",
    },
    {
        "inputs": [_USER, _TOPIC],
        "name": "getLatestMemory",
        "outputs": [_MEMORY_TUPLE],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            _USER,
            _TOPIC,
            {"internalType": "uint256", "name": "index", "type": "uint256"},
        ],
        "name": "getMemory",
        "outputs": [_MEMORY_TUPLE],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_USER, _TOPIC],
        "name": "getMemoryCount",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            _USER,
            _TOPIC,
            {"internalType": "string", "name": "content", "type": "string"},
        ],
        "name": "storeMemoryFor",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


class EvmVaultBackend:
    """MemoryVault contract client."""

    def __init__(
        self,
        w3: AsyncWeb3,
        contract_address: str,
        *,
        account=None,
        contract=None,
        confirm_writes: bool = False,
        receipt_timeout_seconds: float = 120.0,
    ) -> None:
        self._w3 = w3
        self._contract = contract or w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address),
            abi=VAULT_ABI,
        )
        self._account = account
        self._confirm_writes = confirm_writes
        self._receipt_timeout_seconds = receipt_timeout_seconds

    @classmethod
    def from_config(cls, config: LedgerConfig) -> EvmVaultBackend:
        if not config.rpc_url or not config.contract_address:
            raise ValueError("rpc_url and contract_address are required for the evm backend")
        w3 = AsyncWeb3(
            AsyncHTTPProvider(
                config.rpc_url,
                request_kwargs={"timeout": config.read_timeout_seconds},
            )
        )
        account = Account.from_key(config.private_key) if config.private_key else None
        return cls(
            w3,
            config.contract_address,
            account=account,
            confirm_writes=config.confirm_writes,
            receipt_timeout_seconds=config.write_timeout_seconds,
        )

    @property
    def writer(self) -> str | None:
        return self._account.address if self._account is not None else None

    @staticmethod
    def _owner(owner: str) -> str:
        return AsyncWeb3.to_checksum_address(owner)

    # -- write --

    async def store_memory_for(self, owner: str, topic_key: bytes, content: str) -> str:
        """Sign and broadcast ``storeMemoryFor``; return the transaction hash."""
        if self._account is None:
            raise RuntimeError("no signing key configured for this backend")

        sender = self._account.address
        call = self._contract.functions.storeMemoryFor(
            self._owner(owner), topic_key, content
        )
        tx = await call.build_transaction(
            {
                "from": sender,
                "nonce": await self._w3.eth.get_transaction_count(sender, "pending"),
                "chainId": await self._w3.eth.chain_id,
            }
        )
        signed = self._account.sign_transaction(tx)
        tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_id = AsyncWeb3.to_hex(tx_hash)
        logger.info("submitted storeMemoryFor tx=%s owner=%s", tx_id, owner)

        if self._confirm_writes:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout_seconds
            )
            if receipt["status"] != 1:
                raise RuntimeError(f"transaction {tx_id} reverted")
        return tx_id

    # -- read --

    async def get_latest_memory(self, owner: str, topic_key: bytes) -> object | None:
        # The contract reverts on an empty set; check the count so that
        # "nothing stored" is never confused with a failed call.
        if await self.get_memory_count(owner, topic_key) == 0:
            return None
        return await self._contract.functions.getLatestMemory(
            self._owner(owner), topic_key
        ).call()

    async def get_memory(self, owner: str, topic_key: bytes, index: int) -> object:
        return await self._contract.functions.getMemory(
            self._owner(owner), topic_key, index
        ).call()

    async def get_memory_count(self, owner: str, topic_key: bytes) -> int:
        count = await self._contract.functions.getMemoryCount(
            self._owner(owner), topic_key
        ).call()
        return int(count)

    async def aclose(self) -> None:
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
