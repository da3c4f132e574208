from typing import Final
from enum import StrEnum


class ErrorKind(StrEnum):
    TRANSPORT = "TRANSPORT"
    PROTOCOL  = "PROTOCOL"
    SKIPPED   = "SKIPPED"


class Suite(StrEnum):
    ETH   = "Ethereum"
    DEBUG = "Debug"
    ZKS   = "ZKsync"


# Fallback code for transport failures that carry no HTTP status
HTTP_ERROR: Final = "HTTP_ERROR"
UNKNOWN_ERROR: Final = "UNKNOWN_ERROR"

# Skip reasons
NULL_RESULT: Final = "null result"
NEEDS_SIGNER: Final = "requires an unlocked signing account"
NEEDS_STREAM: Final = "requires a streaming (websocket) transport"
NO_PROOF_ADDRESS: Final = "no valid message-proof address available"
FILTER_NOT_CREATED: Final = "filter creation failed"

DISCOVERY_WINDOW = 5  # most recent data batches scanned for message senders
MAX_SUGGESTIONS = 5

ZERO_STORAGE_KEY: Final = "0x" + "0" * 64
CONFIRMED_TOKENS_PAGE = (0, 100)

# Methods that cannot run inside this harness; recorded as explicit skips
SIGNING_METHODS: Final = (
    "eth_sendTransaction",
    "eth_sign",
    "eth_signTransaction",
    "eth_signTypedData_v4",
)
STREAMING_METHODS: Final = (
    "eth_subscribe",
    "eth_unsubscribe",
)

__all__ = [
    "CONFIRMED_TOKENS_PAGE",
    "DISCOVERY_WINDOW",
    "FILTER_NOT_CREATED",
    "HTTP_ERROR",
    "MAX_SUGGESTIONS",
    "NEEDS_SIGNER",
    "NEEDS_STREAM",
    "NO_PROOF_ADDRESS",
    "NULL_RESULT",
    "SIGNING_METHODS",
    "STREAMING_METHODS",
    "UNKNOWN_ERROR",
    "ZERO_STORAGE_KEY",

    ######
    "ErrorKind",
    "Suite",
]
