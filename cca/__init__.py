"""
cca - Continuous Clearing Auction engine

This package contains the deterministic accounting engine for a continuous,
time-weighted, uniform-clearing-price token auction. All arithmetic is
integer fixed point.

Modules:
    auction: The orchestrator and its state machine
    tickbook: Price-level book
    checkpoints: Checkpoint chain and lazy fill accounting
    schedule: Issuance schedule
"""

__version__ = "1.0.0"
