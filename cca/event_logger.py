"""
Event Logger for off-chain auction observers.

Writes one JSON object per line for every tick initialization, checkpoint
and bid lifecycle step, so settlement can be replayed and audited after
the fact.
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TextIO


@dataclass
class TickInitializedEvent:
    """A new price level entered the book."""

    block: int
    price: int


@dataclass
class CheckpointEvent:
    """A checkpoint was appended."""

    block: int
    clearing_price: int
    cumulative_mps: int
    total_cleared_x7x7: int
    currency_raised_x7x7: int


@dataclass
class BidSubmittedEvent:
    """A bid was admitted."""

    block: int
    bid_id: int
    owner: str
    max_price: int
    amount: int


@dataclass
class BidExitedEvent:
    """A bid exited with its final fill."""

    block: int
    bid_id: int
    owner: str
    tokens_filled: int
    currency_refunded: int


@dataclass
class TokensClaimedEvent:
    """Filled tokens were sent to a bid owner."""

    block: int
    bid_id: int
    owner: str
    tokens: int


AuctionEvent = (
    TickInitializedEvent | CheckpointEvent | BidSubmittedEvent | BidExitedEvent | TokensClaimedEvent
)

EVENT_TYPES: dict[type, str] = {
    TickInitializedEvent: "tick_initialized",
    CheckpointEvent: "checkpoint",
    BidSubmittedEvent: "bid_submitted",
    BidExitedEvent: "bid_exited",
    TokensClaimedEvent: "tokens_claimed",
}


class EventLogger:
    """
    Appends auction events to a JSONL file as they happen.

    The file is line buffered so an observer tailing it sees each event as
    soon as the auction emits it. Logging after `close()` is a no-op.

    Usage:
        with EventLogger(Path("logs/auction_events.jsonl")) as event_logger:
            auction = Auction(params, transfers, event_logger=event_logger)
            ...
    """

    def __init__(self, output_path: Path):
        self.output_path = output_path
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file: TextIO | None = open(output_path, "w", buffering=1)

    def log(self, event: AuctionEvent) -> None:
        if self._file is None:
            return
        record = {"event_type": EVENT_TYPES[type(event)], **asdict(event)}
        self._file.write(json.dumps(record) + "\n")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "EventLogger":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def load_events(log_path: Path) -> list[dict[str, object]]:
    """Read back every event written by an EventLogger, skipping blank lines."""
    with open(log_path) as f:
        return [json.loads(line) for line in f if line.strip()]
