"""
cca/errors.py - Exception hierarchy for the clearing auction engine.

Four families:
    ConfigurationError: bad construction parameters, raised once and never retried
    PreconditionError: caller errors against the auction lifecycle or inputs
    ArithmeticGuardError: divisions the engine refuses to perform
    ReentrancyError: a collaborator called back into a guarded entry point

Failures raised by external collaborators (validation hooks, transfers) are
not wrapped; they reach the caller unchanged.
"""


class AuctionError(Exception):
    """Base class for every error raised by the auction engine."""


class ConfigurationError(AuctionError, ValueError):
    """Construction parameters are invalid."""


class FloorPriceIsZeroError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("floor price must be non-zero")


class TickSpacingIsZeroError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("tick spacing must be non-zero")


class FloorPriceTooHighError(ConfigurationError):
    def __init__(self, floor_price: int, max_bid_price: int) -> None:
        self.floor_price = floor_price
        self.max_bid_price = max_bid_price
        super().__init__(
            f"floor price {floor_price} exceeds the maximum bid price {max_bid_price}"
        )


class InvalidTotalSupplyError(ConfigurationError):
    def __init__(self, total_supply: int, max_total_supply: int) -> None:
        self.total_supply = total_supply
        super().__init__(
            f"total supply must be in (0, {max_total_supply}], got {total_supply}"
        )


class InvalidEndBlockError(ConfigurationError):
    def __init__(self, start_block: int, end_block: int) -> None:
        self.start_block = start_block
        self.end_block = end_block
        super().__init__(f"end block {end_block} must be after start block {start_block}")


class ClaimBlockIsBeforeEndBlockError(ConfigurationError):
    def __init__(self, claim_block: int, end_block: int) -> None:
        self.claim_block = claim_block
        self.end_block = end_block
        super().__init__(f"claim block {claim_block} is before end block {end_block}")


class InvalidAuctionStepsError(ConfigurationError):
    """The packed issuance schedule is malformed or inconsistent."""


class PreconditionError(AuctionError):
    """The operation is not allowed in the current state or with these inputs."""


class BlockNumberRewindError(PreconditionError):
    def __init__(self, current: int, requested: int) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"cannot move from block {current} back to block {requested}")


class AuctionNotStartedError(PreconditionError):
    def __init__(self, block: int, start_block: int) -> None:
        super().__init__(f"auction starts at block {start_block}, current block is {block}")


class TokensNotReceivedError(PreconditionError):
    def __init__(self) -> None:
        super().__init__("auction tokens have not been received")


class InvalidTokenAmountReceivedError(PreconditionError):
    def __init__(self, amount: int, total_supply: int) -> None:
        self.amount = amount
        super().__init__(f"received {amount} tokens, expected at least {total_supply}")


class AuctionIsOverError(PreconditionError):
    def __init__(self, message: str = "auction is over") -> None:
        super().__init__(message)


class AuctionIsNotOverError(PreconditionError):
    def __init__(self, block: int, end_block: int) -> None:
        super().__init__(f"auction ends at block {end_block}, current block is {block}")


class NotClaimableError(PreconditionError):
    def __init__(self, block: int, claim_block: int) -> None:
        super().__init__(f"tokens are claimable from block {claim_block}, current block is {block}")


class NotGraduatedError(PreconditionError):
    def __init__(self) -> None:
        super().__init__("auction did not raise the required currency")


class AlreadySweptError(PreconditionError):
    def __init__(self, what: str) -> None:
        super().__init__(f"{what} already swept")


class InvalidBidAmountError(PreconditionError):
    def __init__(self, amount: int) -> None:
        self.amount = amount
        super().__init__(f"bid amount must be positive, got {amount}")


class BidMustBeAboveClearingPriceError(PreconditionError):
    def __init__(self, max_price: int, clearing_price: int) -> None:
        self.max_price = max_price
        self.clearing_price = clearing_price
        super().__init__(
            f"bid max price {max_price} must be above clearing price {clearing_price}"
        )


class InvalidBidPriceTooHighError(PreconditionError):
    def __init__(self, max_price: int, max_bid_price: int) -> None:
        self.max_price = max_price
        self.max_bid_price = max_bid_price
        super().__init__(f"bid max price {max_price} exceeds maximum {max_bid_price}")


class BidNotFoundError(PreconditionError, KeyError):
    def __init__(self, bid_id: int) -> None:
        self.bid_id = bid_id
        super().__init__(f"bid {bid_id} does not exist")

    def __str__(self) -> str:
        return self.args[0]


class BidAlreadyExitedError(PreconditionError):
    def __init__(self, bid_id: int) -> None:
        self.bid_id = bid_id
        super().__init__(f"bid {bid_id} has already exited")


class BidNotExitedError(PreconditionError):
    def __init__(self, bid_id: int) -> None:
        self.bid_id = bid_id
        super().__init__(f"bid {bid_id} has not exited")


class BidOwnerMismatchError(PreconditionError):
    def __init__(self, bid_id: int, owner: str) -> None:
        self.bid_id = bid_id
        self.owner = owner
        super().__init__(f"bid {bid_id} is not owned by {owner}")


class CannotExitBidError(PreconditionError):
    def __init__(self, bid_id: int) -> None:
        self.bid_id = bid_id
        super().__init__(
            f"bid {bid_id} was outbid or sits at the clearing price; "
            "exit it with checkpoint hints"
        )


class InvalidLastFullyFilledCheckpointHintError(PreconditionError):
    def __init__(self, block: int) -> None:
        self.block = block
        super().__init__(f"checkpoint {block} is not the last fully filled checkpoint for this bid")


class InvalidOutbidBlockCheckpointHintError(PreconditionError):
    def __init__(self, block: int) -> None:
        self.block = block
        super().__init__(f"checkpoint {block} is not the checkpoint where this bid was outbid")


class CheckpointNotFoundError(PreconditionError, KeyError):
    def __init__(self, block: int) -> None:
        self.block = block
        super().__init__(f"no checkpoint at block {block}")

    def __str__(self) -> str:
        return self.args[0]


class ForceIterateOverTicksError(PreconditionError):
    def __init__(self, until_price: int, clearing_price: int) -> None:
        super().__init__(
            f"iteration target {until_price} must be above clearing price {clearing_price}"
        )


class TickPriceNotAtBoundaryError(PreconditionError):
    def __init__(self, price: int, floor_price: int, tick_spacing: int) -> None:
        self.price = price
        super().__init__(
            f"price {price} is not floor {floor_price} plus a multiple of {tick_spacing}"
        )


class TickPreviousPriceInvalidError(PreconditionError):
    def __init__(self, prev_price: int, price: int) -> None:
        self.prev_price = prev_price
        self.price = price
        super().__init__(
            f"hint {prev_price} must be an initialized tick below {price}"
        )


class TickNotInitializedError(PreconditionError):
    def __init__(self, price: int) -> None:
        self.price = price
        super().__init__(f"tick {price} is not initialized")


class InsufficientBalanceError(PreconditionError):
    def __init__(self, account: str, balance: int, amount: int) -> None:
        self.account = account
        super().__init__(f"{account} holds {balance}, needs {amount}")


class ArithmeticGuardError(AuctionError, ArithmeticError):
    """A guarded division would have been undefined."""


class ZeroRemainingIssuanceError(ArithmeticGuardError):
    def __init__(self) -> None:
        super().__init__("no issuance remains in the schedule")


class ReentrancyError(AuctionError):
    def __init__(self) -> None:
        super().__init__("reentrant call into the auction")
