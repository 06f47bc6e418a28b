"""Tests for the web3 receipt adapters."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import requests
from hexbytes import HexBytes
from web3.datastructures import AttributeDict
from web3.exceptions import TransactionNotFound, Web3Exception

from chain_fixtures import TOKEN, TRANSFER_TOPIC0, TREASURY, TX_HASH, address_topic, uint_data
from errors import NotFoundError, ProviderError
from receipt_provider import (
    AsyncWeb3ReceiptProvider,
    Web3ReceiptProvider,
    normalize_tx_hash,
    receipt_from_web3,
)


def web3_receipt(status=1):
    return AttributeDict(
        {
            "transactionHash": HexBytes(TX_HASH),
            "status": status,
            "blockNumber": 256,
            "logs": [
                AttributeDict(
                    {
                        "address": TOKEN,
                        "topics": [HexBytes(TRANSFER_TOPIC0), HexBytes(address_topic(TREASURY))],
                        "data": HexBytes(uint_data(10000)),
                    }
                )
            ],
        }
    )


class TestNormalizeTxHash:
    def test_lowercases(self):
        assert normalize_tx_hash(TX_HASH.upper().replace("0X", "0x")) == TX_HASH

    def test_adds_prefix(self):
        assert normalize_tx_hash(TX_HASH[2:]) == TX_HASH

    @pytest.mark.parametrize("bad", ["", "0x", "0x123", TX_HASH + "00", "0x" + "g" * 64])
    def test_rejects_malformed(self, bad):
        with pytest.raises(NotFoundError):
            normalize_tx_hash(bad)

    def test_rejects_non_string(self):
        with pytest.raises(NotFoundError):
            normalize_tx_hash(None)


class TestReceiptFromWeb3:
    def test_converts_hexbytes(self):
        receipt = receipt_from_web3(TX_HASH, web3_receipt())

        assert receipt.status is True
        assert receipt.block_number == 256
        log = receipt.logs[0]
        assert log.address == TOKEN
        assert log.topics[0] == TRANSFER_TOPIC0
        assert log.topics[1] == address_topic(TREASURY)
        assert log.data == uint_data(10000)

    def test_reverted_status(self):
        assert receipt_from_web3(TX_HASH, web3_receipt(status=0)).status is False

    def test_json_rpc_dict(self):
        raw = {"status": "0x1", "blockNumber": "0x100", "logs": []}

        receipt = receipt_from_web3(TX_HASH, raw)

        assert receipt.status is True
        assert receipt.block_number == 256
        assert receipt.logs == ()

    @pytest.mark.parametrize("status", [None, 2, "garbage", "0x2"])
    def test_unknown_status_is_provider_error(self, status):
        with pytest.raises(ProviderError, match="Malformed receipt"):
            receipt_from_web3(TX_HASH, {"status": status, "blockNumber": 1, "logs": []})

    def test_missing_status_is_provider_error(self):
        with pytest.raises(ProviderError):
            receipt_from_web3(TX_HASH, {"blockNumber": 1, "logs": []})

    def test_missing_receipt_is_not_found(self):
        with pytest.raises(NotFoundError):
            receipt_from_web3(TX_HASH, None)

    def test_missing_fields_is_provider_error(self):
        with pytest.raises(ProviderError):
            receipt_from_web3(TX_HASH, {"status": 1})


class TestWeb3ReceiptProvider:
    def test_returns_receipt(self):
        w3 = MagicMock()
        w3.eth.get_transaction_receipt.return_value = web3_receipt()

        receipt = Web3ReceiptProvider(w3).get_transaction_receipt(TX_HASH)

        assert receipt.transaction_hash == TX_HASH
        w3.eth.get_transaction_receipt.assert_called_once_with(TX_HASH)

    def test_not_found(self):
        w3 = MagicMock()
        w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("not found")

        with pytest.raises(NotFoundError):
            Web3ReceiptProvider(w3).get_transaction_receipt(TX_HASH)

    def test_connection_error(self):
        w3 = MagicMock()
        w3.eth.get_transaction_receipt.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ProviderError) as exc_info:
            Web3ReceiptProvider(w3).get_transaction_receipt(TX_HASH)

        assert exc_info.value.cancelled is False

    def test_timeout_is_cancelled(self):
        w3 = MagicMock()
        w3.eth.get_transaction_receipt.side_effect = requests.exceptions.ReadTimeout("slow")

        with pytest.raises(ProviderError) as exc_info:
            Web3ReceiptProvider(w3).get_transaction_receipt(TX_HASH)

        assert exc_info.value.cancelled is True

    def test_rpc_error(self):
        w3 = MagicMock()
        w3.eth.get_transaction_receipt.side_effect = Web3Exception("rate limited")

        with pytest.raises(ProviderError):
            Web3ReceiptProvider(w3).get_transaction_receipt(TX_HASH)


class TestAsyncWeb3ReceiptProvider:
    @pytest.mark.asyncio
    async def test_returns_receipt(self):
        w3 = MagicMock()
        w3.eth.get_transaction_receipt = AsyncMock(return_value=web3_receipt())

        receipt = await AsyncWeb3ReceiptProvider(w3).get_transaction_receipt(TX_HASH)

        assert receipt.status is True

    @pytest.mark.asyncio
    async def test_not_found(self):
        w3 = MagicMock()
        w3.eth.get_transaction_receipt = AsyncMock(side_effect=TransactionNotFound("not found"))

        with pytest.raises(NotFoundError):
            await AsyncWeb3ReceiptProvider(w3).get_transaction_receipt(TX_HASH)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        w3 = MagicMock()
        w3.eth.get_transaction_receipt = AsyncMock(side_effect=ConnectionRefusedError("refused"))

        with pytest.raises(ProviderError):
            await AsyncWeb3ReceiptProvider(w3).get_transaction_receipt(TX_HASH)
