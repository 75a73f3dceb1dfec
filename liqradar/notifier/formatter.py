# liqradar/notifier/formatter.py
from datetime import UTC, datetime
from html import escape
from typing import Any

from liqradar.aggregator.flow import MarketSentiment
from liqradar.aggregator.liquidation import LiqStats
from liqradar.state.daily import DailyTotal
from liqradar.state.ledger import AssetLiquidations
from liqradar.storage.models import (
    AssetStatistics,
    CoinTrendEvent,
    LargeOrderEvent,
    LiquidationEvent,
    TrendReversal,
    VolumeAnomalyEvent,
)

VOLUME_LABELS = {
    "spot_buy": "🟢 Spot buying",
    "spot_sell": "🔴 Spot selling",
    "futures_long": "🟢 Futures longs",
    "futures_short": "🔴 Futures shorts",
}


def _format_usd(value: float) -> str:
    if abs(value) >= 1_000_000_000:
        return f"${value / 1_000_000_000:.1f}B"
    elif abs(value) >= 1_000_000:
        return f"${value / 1_000_000:.1f}M"
    elif abs(value) >= 1_000:
        return f"${value / 1_000:.1f}K"
    else:
        return f"${value:,.0f}"


def _format_price(price: float) -> str:
    if price >= 1:
        return f"${price:,.2f}"
    return f"${price:.6f}"


def _intensity(level: int) -> str:
    level = max(0, min(5, level))
    return "●" * level + "○" * (5 - level)


def _clock(timestamp_ms: int | None = None) -> str:
    moment = (
        datetime.fromtimestamp(timestamp_ms / 1000, UTC)
        if timestamp_ms is not None
        else datetime.now(UTC)
    )
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def format_liquidation_alert(event: LiquidationEvent) -> str:
    side = "LONG" if event.type == "long" else "SHORT"
    icon = "🩸" if event.type == "long" else "🚀"
    source = "force order" if event.source == "FORCE_ORDER" else "price/volume"

    return f"""{icon} <b>{event.asset}</b> {side} liquidations
💥 {_format_usd(event.amount)} ({source})
💵 {_format_price(event.price)} ({event.change_24h:+.2f}% 24h)
📊 Intensity {_intensity(event.intensity)} | {event.market_cap} cap
⏰ {_clock(event.timestamp)}"""


def format_volume_alert(event: VolumeAnomalyEvent) -> str:
    label = VOLUME_LABELS.get(event.type, event.type)
    return f"""📈 <b>{event.asset}</b> unusual volume
{label} ({event.market})
🔊 {event.volume_spike:.1f}x average ({_format_usd(event.volume)} vs {_format_usd(event.avg_volume)})
💵 {_format_price(event.price)} ({event.price_movement:+.2f}% bar)
📊 Strength {_intensity(event.strength)} | {event.trades} trades
⏰ {_clock(event.timestamp)}"""


def format_large_order_alert(event: LargeOrderEvent) -> str:
    icon = "🐋🟢" if event.direction == "bullish" else "🐋🔴"
    return f"""{icon} <b>{event.asset}</b> large order
💰 {_format_usd(event.amount)} ({event.direction})
💵 {_format_price(event.price)}
📊 Level {_intensity(event.level)}
⏰ {_clock(event.timestamp)}"""


def format_reversal_alert(reversal: TrendReversal) -> str:
    prev = reversal.previous_type.upper()
    curr = reversal.current_type.upper()
    indicators = "\n".join(f"  • {escape(i)}" for i in reversal.sentiment.indicators)
    prev_pos = reversal.previous_positions
    curr_pos = reversal.current_positions

    text = f"""🔄 <b>{reversal.asset}</b> trend reversal {prev} → {curr}
📊 {_format_usd(reversal.previous_volume)} → {_format_usd(reversal.current_volume)} ({reversal.reversal_ratio:.1f}x)
👥 Positions L{prev_pos["long"]}/S{prev_pos["short"]} → L{curr_pos["long"]}/S{curr_pos["short"]}
🎯 Intensity {_intensity(reversal.intensity)} | confidence {reversal.sentiment.confidence}%
💵 {_format_price(reversal.price)} | {reversal.timeframe_minutes}min window"""
    if reversal.sentiment.description:
        text += f"\n📝 {escape(reversal.sentiment.description)}"
    if indicators:
        text += f"\n{indicators}"
    return text


def format_coin_trend_alert(event: CoinTrendEvent) -> str:
    tags = []
    if event.is_hidden:
        tags.append("hidden")
    if event.is_micro_cap:
        tags.append("micro cap")
    tag_text = f" [{', '.join(tags)}]" if tags else ""

    return f"""🔍 <b>{event.asset}</b> coin trend{tag_text}
💥 {_format_usd(event.amount)} {event.type} pressure ({event.change_24h:+.2f}% 24h)
🎯 Anomaly score {event.anomaly_score}/10 | {event.volume_spike:.1f}x volume
💵 {_format_price(event.price)}
⏰ {_clock(event.timestamp)}"""


def format_alert(event: Any) -> str | None:
    if isinstance(event, LiquidationEvent):
        return format_liquidation_alert(event)
    if isinstance(event, VolumeAnomalyEvent):
        return format_volume_alert(event)
    if isinstance(event, LargeOrderEvent):
        return format_large_order_alert(event)
    if isinstance(event, TrendReversal):
        return format_reversal_alert(event)
    if isinstance(event, CoinTrendEvent):
        return format_coin_trend_alert(event)
    return None


def format_leaderboard(side: str, entries: list[AssetLiquidations], limit: int = 10) -> str:
    title = "🩸 Long liquidations" if side == "long" else "🚀 Short liquidations"
    if not entries:
        return f"{title}\n\nNo assets above the filters yet."

    lines = [f"<b>{title}</b> (last 15 min)", ""]
    for i, entry in enumerate(entries[:limit], 1):
        lines.append(
            f"{i}. <b>{entry.asset}</b> {_format_usd(entry.amount_for(side))} "
            f"({entry.positions_for(side)} pos) {_intensity(entry.intensity)} {entry.market_cap}"
        )
    return "\n".join(lines)


def format_reversals(reversals: list[TrendReversal], limit: int = 10) -> str:
    if not reversals:
        return "🔄 No trend reversals in the last 30 minutes."

    lines = ["<b>🔄 Trend reversals</b>", ""]
    for i, r in enumerate(reversals[:limit], 1):
        lines.append(
            f"{i}. <b>{r.asset}</b> {r.previous_type.upper()} → {r.current_type.upper()} "
            f"{r.reversal_ratio:.1f}x {_intensity(r.intensity)} ({r.sentiment.confidence}%)"
        )
    return "\n".join(lines)


def format_status(data: dict[str, Any]) -> str:
    feed = data["feed"]
    counts = data["counts"]
    daily = data["daily"]
    error = f"\n⚠️ {escape(feed.error)}" if feed.error else ""

    return f"""🛰 <b>liq-radar status</b>
⏰ {_clock()}

📡 Feed: {feed.status} ({len(feed.streams)} streams, {feed.reconnect_attempts} retries){error}
⚙️ Processed {data["processed"]:,} ticks, dropped {data["dropped"]:,}

━━━━━━━━━━━━━━━━━━━━
💥 Liquidations: {counts["liquidations"]} | assets {counts["assets"]}
📈 Volume alerts: {counts["volume_alerts"]}
🐋 Large orders: {counts["large_orders"]}
🔄 Reversals: {counts["reversals"]}
🔍 Coin trends: {counts["coin_trends"]}

━━━━━━━━━━━━━━━━━━━━
📅 Today: {_format_usd(daily["total_liquidated"])} (L {_format_usd(daily["total_long"])} / S {_format_usd(daily["total_short"])})
⏳ Reset in {data["reset_in"]}
💾 Persistence: {data["persistence"]}"""


def format_asset(
    asset: str,
    entry: AssetLiquidations | None,
    stats: AssetStatistics | None,
) -> str:
    if entry is None and stats is None:
        return f"No recent activity for {escape(asset)}."

    lines = [f"🔎 <b>{escape(asset)}</b>"]
    if entry is not None:
        lines += [
            "",
            "<b>Session (15 min)</b>",
            f"  Long: {_format_usd(entry.long_liquidated)} ({entry.long_positions} pos)",
            f"  Short: {_format_usd(entry.short_liquidated)} ({entry.short_positions} pos)",
            f"  Dominant: {entry.dominant_type} | {_intensity(entry.intensity)}",
            f"  Price: {_format_price(entry.price)}",
        ]
    if stats is not None:
        trending = "yes" if stats.is_trending else "no"
        last = _clock(stats.last_activity) if stats.last_activity else "-"
        lines += [
            "",
            "<b>Stored</b>",
            f"  Long total: {_format_usd(stats.total_long_liquidations)}",
            f"  Short total: {_format_usd(stats.total_short_liquidations)}",
            f"  Liquidations: {stats.liquidation_count} | max {_format_usd(stats.max_liquidation_amount)}",
            f"  Anomalies: {stats.anomaly_events_count} (avg score {stats.avg_anomaly_score:.1f})",
            f"  Price: {_format_price(stats.current_price)} (avg {_format_price(stats.avg_price)})",
            f"  Trending: {trending} | last {last}",
        ]
    return "\n".join(lines)


def format_asset_list(title: str, stats: list[AssetStatistics], empty: str) -> str:
    if not stats:
        return empty

    lines = [f"<b>{title}</b>", ""]
    for i, s in enumerate(stats, 1):
        total = s.total_long_liquidations + s.total_short_liquidations
        last = _clock(s.last_activity) if s.last_activity else "-"
        flag = " 🔥" if s.is_trending else ""
        lines.append(
            f"{i}. <b>{s.asset}</b>{flag} {_format_usd(total)} liq "
            f"({s.liquidation_count}) | {s.anomaly_events_count} anomalies | {last}"
        )
    return "\n".join(lines)


def format_daily(
    high: list[DailyTotal],
    low: list[DailyTotal],
    stats: dict[str, float],
    recent: LiqStats,
    reset_in: str,
) -> str:
    lines = [
        "📅 <b>Liquidations today (UTC)</b>",
        f"💥 {_format_usd(stats['total_liquidated'])} across {stats['total_assets']} assets",
        f"🩸 Long {_format_usd(stats['total_long'])} | 🚀 Short {_format_usd(stats['total_short'])}",
    ]
    for label, totals in (("High cap", high), ("Low cap", low)):
        if not totals:
            continue
        lines += ["", f"<b>{label}</b>"]
        for i, t in enumerate(totals, 1):
            lines.append(
                f"{i}. <b>{t.asset}</b> {_format_usd(t.total)} "
                f"(L {_format_usd(t.long_total)} / S {_format_usd(t.short_total)})"
            )
    lines += [
        "",
        f"⏱ Recent feed: L {_format_usd(recent.long)} ({recent.high_cap_long} high / "
        f"{recent.low_cap_long} low) | S {_format_usd(recent.short)} "
        f"({recent.high_cap_short} high / {recent.low_cap_short} low)",
        f"⏳ Reset in {reset_in}",
    ]
    return "\n".join(lines)


def format_sentiment(sentiment: MarketSentiment) -> str:
    count = sentiment.bullish + sentiment.bearish + sentiment.neutral
    if not count:
        return "🧭 No 24h ticker data yet."

    icon = "🟢" if sentiment.score > 0.1 else "🔴" if sentiment.score < -0.1 else "⚪"
    return f"""🧭 <b>Market sentiment</b> {icon} {sentiment.interpretation}
📊 Score {sentiment.score:+.2f} over {count} symbols
🟢 {sentiment.bullish} up &gt;2% | 🔴 {sentiment.bearish} down &gt;2% | ⚪ {sentiment.neutral} flat"""
