"""Find an address usable for cross-layer message proofs.

`zks_getL2ToL1MsgProof` needs an address that has actually sent an L2 -> L1
message; there is no safe default. The engine walks the most recent rollup
(L1) batches, indexes every message sender it finds, and ranks them by how many
messages they sent.
"""

import logging
from dataclasses import dataclass, field

from rpcprobe.constants import DISCOVERY_WINDOW, MAX_SUGGESTIONS
from rpcprobe.dispatcher import RequestDispatcher
from rpcprobe.errors import AddressNotFoundError, FormatError
from rpcprobe.validators import parse_quantity, validate_address

log = logging.getLogger("rpcprobe.discovery")


@dataclass
class SenderStats:
    batch_numbers: list[int] = field(default_factory=list)
    message_count: int = 0

    def observe(self, batch_number: int) -> None:
        self.message_count += 1
        if batch_number not in self.batch_numbers:
            self.batch_numbers.append(batch_number)


@dataclass(frozen=True)
class Suggestion:
    address: str
    batch_numbers: list[int]
    message_count: int

    def to_dict(self) -> dict:
        return {"address": self.address, "batch_numbers": list(self.batch_numbers), "message_count": self.message_count}


def rank_senders(index: dict[str, SenderStats], limit: int = MAX_SUGGESTIONS) -> list[Suggestion]:
    """Order senders by message count, highest first.

    Ties keep the order in which senders were first seen (newest batch first,
    then message order within the batch); `sorted` is stable.
    """
    ranked = sorted(index.items(), key=lambda item: item[1].message_count, reverse=True)
    return [
        Suggestion(address=addr, batch_numbers=list(stats.batch_numbers), message_count=stats.message_count)
        for addr, stats in ranked[:limit]
    ]


class AddressDiscoveryEngine:
    def __init__(
        self,
        dispatcher: RequestDispatcher,
        *,
        window: int = DISCOVERY_WINDOW,
        limit: int = MAX_SUGGESTIONS,
    ):
        self.dispatcher = dispatcher
        self.window = window
        self.limit = limit

    async def latest_batch_number(self) -> int | None:
        outcome = await self.dispatcher.dispatch("zks_L1BatchNumber", [])
        if not outcome.success:
            log.warning("Failed to fetch latest L1 batch number: %s", outcome.error)
            return None
        try:
            latest = parse_quantity(outcome.result)
        except FormatError as e:
            log.warning("Unusable L1 batch number %r: %s", outcome.result, e)
            return None
        log.info("Latest L1 batch number: %s", latest)
        return latest

    async def scan(self) -> dict[str, SenderStats]:
        """Build a fresh MessageSenderIndex from the most recent `window` batches."""
        index: dict[str, SenderStats] = {}
        latest = await self.latest_batch_number()
        if latest is None:
            return index

        for batch_number in range(latest, max(latest - self.window, -1), -1):
            outcome = await self.dispatcher.dispatch("zks_getL1BatchDetails", [batch_number])
            if not outcome.success:
                log.warning("Failed to fetch details for batch %s: %s", batch_number, outcome.error)
                continue
            details = outcome.result
            messages = details.get("l2ToL1Messages") if isinstance(details, dict) else None
            if not isinstance(messages, list):
                continue
            for msg in messages:
                sender = msg.get("sender") if isinstance(msg, dict) else None
                if not isinstance(sender, str) or not sender:
                    continue
                index.setdefault(sender.lower(), SenderStats()).observe(batch_number)

        if not index:
            log.warning("No L2 to L1 message senders found in recent batches")
        else:
            log.info("Found %s addresses that have sent L2 to L1 messages", len(index))
        return index

    async def suggest(self) -> list[Suggestion]:
        """Scan and return the top senders, logging them as operator guidance."""
        suggestions = rank_senders(await self.scan(), self.limit)
        log_suggestions(suggestions)
        return suggestions

    async def validate_message_proof_address(self, address) -> str:
        """Return the canonical (lowercase) address if it sent messages in the scanned batches.

        Raises FormatError for a malformed address and AddressNotFoundError, carrying
        the current suggestions, when it is well formed but unseen.
        """
        canonical = validate_address(address).lower()
        index = await self.scan()
        stats = index.get(canonical)
        if stats is None:
            suggestions = rank_senders(index, self.limit)
            log_suggestions(suggestions)
            raise AddressNotFoundError(
                f"Address {address} has not sent any L2 to L1 messages in recent batches.",
                suggestions,
            )
        log.info(
            "Address %s has sent %s L2 to L1 messages\nRecent batches: %s",
            address, stats.message_count, ", ".join(map(str, stats.batch_numbers)),
        )
        return canonical


def log_suggestions(suggestions: list[Suggestion]) -> None:
    if not suggestions:
        log.info(
            "\nNo L2 to L1 message senders found in recent batches.\n"
            "You can try:\n"
            "1. Using a different RPC endpoint\n"
            "2. Checking the chain explorer for recent L2 to L1 messages\n"
            "3. Waiting for new L2 to L1 messages to be sent"
        )
        return

    lines = ["\nSuggested addresses for L2 to L1 message proofs:", "-" * 44]
    for i, s in enumerate(suggestions, 1):
        lines.append(f"\n{i}. Address: {s.address}")
        lines.append(f"   Messages sent: {s.message_count}")
        lines.append(f"   Recent batches: {', '.join(map(str, s.batch_numbers))}")
    lines.append("\nTo use one of these addresses, set:")
    lines.append("TEST_MESSAGE_PROOF_ADDRESS=<address>")
    lines.append("TEST_L1_BATCH_NUMBER=<batch_number>")
    log.info("\n".join(lines))
