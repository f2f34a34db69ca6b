"""
Fee calculations for leveraged perpetual futures backtesting.

Implements the simplified USDT-margined fee model used by the simulator:
- Percentage-based maker/taker fees (VIP-tier dependent on the exchange)
- Opening fee netted into the initial margin (not charged again)
- Closing fee charged on the notional at the closing price
- Minimum take-profit needed to cover a round trip

Fee Structure (Binance USDT-M futures, base tier):
- Maker fee: 0.02% (0.0002)
- Taker fee: 0.05% (0.0005)
- Formula: Notional × Rate

The simulator assumes resting (maker) orders that are never gapped through,
so MAKER_FEE_RATE is the rate applied by the contract model.
"""

# =============================================================================
# FEE CONSTANTS
# =============================================================================

MAKER_FEE_RATE: float = 0.0002  # 0.02%
TAKER_FEE_RATE: float = 0.0005  # 0.05%


# =============================================================================
# FEE CALCULATION FUNCTIONS
# =============================================================================


def margin_from_offer(
    offered_capital: float,
    leverage: float,
    fee_rate: float = MAKER_FEE_RATE,
) -> float:
    """
    Derive initial margin from gross funds offered for a position.

    Offered funds pay for both the margin and the opening fee:
        offered = margin + margin × leverage × fee_rate
    so:
        margin = offered / (1 + leverage × fee_rate)

    Args:
        offered_capital: Gross funds committed, fee budget included
        leverage: Position leverage
        fee_rate: Fee rate charged on the opening notional

    Returns:
        Initial margin backing the position
    """
    return offered_capital / (1.0 + leverage * fee_rate)


def calculate_closing_fee(
    position_size: float,
    price: float,
    fee_rate: float = MAKER_FEE_RATE,
) -> float:
    """
    Closing fee for a position of `position_size` contract units at `price`.

    Args:
        position_size: Contract units (position_size × price = notional)
        price: Closing price
        fee_rate: Fee rate charged on the closing notional

    Returns:
        Fee amount in quote currency
    """
    return position_size * price * fee_rate


def min_take_profit_ratio(fee_rate: float = MAKER_FEE_RATE) -> float:
    """
    Smallest price move ratio that can still pay for a round trip.

    One fee is paid at open and one at close, so any take-profit ratio
    below twice the fee rate realizes a loss.
    """
    return fee_rate * 2.0