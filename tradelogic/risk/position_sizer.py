"""Position sizing — pure math, no I/O.

Allocates a fixed share of the account balance to each position.  No
leverage, no partial fills.
"""

DEFAULT_ALLOCATION = 0.5


def calculate_size(
    balance: float,
    entry_price: float,
    allocation: float = DEFAULT_ALLOCATION,
) -> float:
    """Calculate position size in units of the asset.

    Formula::

        size = (balance × allocation) / entry_price

    Args:
        balance: Current realized balance (e.g. 1_000.0).
        entry_price: Fill price of the entry.
        allocation: Fraction of the balance committed (default 0.5).

    Returns:
        Position size in units (always positive).

    Raises:
        ValueError: If any input is non-positive.
    """
    if balance <= 0:
        raise ValueError(f"balance must be positive, got {balance}")
    if entry_price <= 0:
        raise ValueError(f"entry_price must be positive, got {entry_price}")
    if allocation <= 0:
        raise ValueError(f"allocation must be positive, got {allocation}")

    return (balance * allocation) / entry_price
