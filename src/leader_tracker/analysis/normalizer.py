"""
Normalization of raw Polymarket trade and activity records.

The Data API returns loosely typed records: numbers may arrive as strings,
fields may be missing, and the trader can sit under several keys depending on
the endpoint. Everything here is best-effort coercion; a record is only
dropped when it names no trader or no market.
"""

import logging
import math
import re
from typing import Any, Iterable, Mapping, Optional

from ..models import Trade, TradeSide

logger = logging.getLogger(__name__)

# Keys that identify the trader, in order of preference
TRADER_KEYS = ("proxyWallet", "user", "owner", "trader", "maker", "taker")
MARKET_KEYS = ("conditionId", "condition_id", "market")
USD_KEYS = ("usdcSize", "usdc_size", "usdValue")

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

# Anything above this is a millisecond timestamp
_MS_THRESHOLD = 10**12


def to_float(value: Any) -> float:
    """Coerce a value to float the way parseFloat would; failures give 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        match = _FLOAT_PREFIX.match(str(value))
        if not match:
            return 0.0
        result = float(match.group(0))
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result


def to_timestamp(value: Any) -> int:
    """Coerce a unix timestamp to whole seconds."""
    seconds = to_float(value)
    if seconds > _MS_THRESHOLD:
        seconds /= 1000
    return int(seconds)


def _first_present(record: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _identifier(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def normalize_trade(
    record: Mapping[str, Any],
    trader_address: Optional[str] = None,
    market_id: Optional[str] = None,
) -> Optional[Trade]:
    """Convert one raw record to a Trade, or None if it names no trader or market."""
    trader = _identifier(trader_address or _first_present(record, TRADER_KEYS)).lower()
    if not trader:
        return None

    # Without a market the trade would pool with every other unlabelled trade
    market = _identifier(market_id or _first_present(record, MARKET_KEYS))
    if not market:
        return None

    timestamp = to_timestamp(record.get("timestamp"))
    price = to_float(record.get("price"))
    size = to_float(record.get("size"))

    usd_raw = _first_present(record, USD_KEYS)
    usd_value = to_float(usd_raw) if usd_raw is not None else price * size

    side = TradeSide.SELL if str(record.get("side") or "").upper() == "SELL" else TradeSide.BUY

    trade_id = (
        record.get("id")
        or record.get("transactionHash")
        or f"{trader}:{market}:{timestamp}"
    )

    return Trade(
        id=str(trade_id),
        timestamp=timestamp,
        trader_address=trader,
        market_id=market,
        side=side,
        price=price,
        size=size,
        usd_value=usd_value,
        market_title=str(record.get("title") or record.get("slug") or ""),
        outcome=str(record.get("outcome") or ""),
        asset=str(record.get("asset") or ""),
    )


def normalize_trades(
    records: Iterable[Any],
    trader_address: Optional[str] = None,
    market_id: Optional[str] = None,
) -> list[Trade]:
    """Normalize a batch of records, silently dropping unattributable ones."""
    trades = []
    dropped = 0
    for record in records or []:
        if not isinstance(record, Mapping):
            dropped += 1
            continue
        trade = normalize_trade(record, trader_address=trader_address, market_id=market_id)
        if trade is None:
            dropped += 1
            continue
        trades.append(trade)

    if dropped:
        logger.debug(f"Dropped {dropped} records without a trader or market")
    return trades
