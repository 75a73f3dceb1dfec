# liqradar/notifier/telegram.py
import logging
import re
from collections.abc import Callable, Coroutine
from typing import Any

from telegram import Bot, BotCommand, Update
from telegram.ext import Application, CommandHandler, ContextTypes

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = """
🛰 <b>liq-radar</b> - Binance liquidation &amp; volume radar

<b>What it watches:</b>
• Long / short liquidations (force orders and price moves)
• Unusual spot and futures volume
• Large orders and small-cap coin trends
• Liquidation trend reversals

Type /help for all commands
"""

HELP_MESSAGE = """
📖 <b>Commands</b>

<b>📊 Session</b>
/top [long|short] - liquidation leaderboard
/reversals - recent trend reversals
/asset SYMBOL - session and stored stats for an asset
/daily - liquidation totals since UTC midnight
/sentiment - market sentiment from 24h changes
/status - system status

<b>💾 Stored</b>
/active - assets active in the last hour
/search QUERY - find stored assets by name

<b>💡 Examples</b>
• /top short - assets with pure short liquidations
• /asset SOL - SOL liquidation history
• /search doge - stored stats for DOGE pairs
"""

BOT_COMMANDS = [
    BotCommand("start", "Start"),
    BotCommand("help", "Show help"),
    BotCommand("top", "Liquidation leaderboard"),
    BotCommand("reversals", "Trend reversals"),
    BotCommand("asset", "Asset statistics"),
    BotCommand("daily", "Daily liquidation totals"),
    BotCommand("sentiment", "Market sentiment"),
    BotCommand("active", "Active assets"),
    BotCommand("search", "Search assets"),
    BotCommand("status", "System status"),
]


class TelegramNotifier:
    def __init__(self, bot_token: str, chat_id: str):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.bot = Bot(token=bot_token)
        self.app: Application | None = None  # type: ignore[type-arg]

        # Callbacks
        self.on_status: Callable[[], Coroutine[Any, Any, str]] | None = None
        self.on_top: Callable[[str], Coroutine[Any, Any, str]] | None = None
        self.on_reversals: Callable[[], Coroutine[Any, Any, str]] | None = None
        self.on_asset: Callable[[str], Coroutine[Any, Any, str]] | None = None
        self.on_daily: Callable[[], Coroutine[Any, Any, str]] | None = None
        self.on_sentiment: Callable[[], Coroutine[Any, Any, str]] | None = None
        self.on_active: Callable[[], Coroutine[Any, Any, str]] | None = None
        self.on_search: Callable[[str], Coroutine[Any, Any, str]] | None = None

    async def send_message(self, text: str) -> None:
        await self.bot.send_message(
            chat_id=self.chat_id,
            text=text,
            parse_mode="HTML",
        )

    @staticmethod
    def _parse_top_command(text: str) -> str | None:
        match = re.match(r"/top(?:@\w+)?(?:\s+(\w+))?\s*$", text.strip(), re.IGNORECASE)
        if not match:
            return None
        side = (match.group(1) or "long").lower()
        return side if side in ("long", "short") else None

    @staticmethod
    def _parse_asset_command(text: str) -> str | None:
        match = re.match(r"/asset(?:@\w+)?\s+([A-Za-z0-9]+)", text.strip())
        if match:
            return match.group(1).upper()
        return None

    @staticmethod
    def _parse_search_command(text: str) -> str | None:
        match = re.match(r"/search(?:@\w+)?\s+([A-Za-z0-9]{1,20})\s*$", text.strip())
        if match:
            return match.group(1).upper()
        return None

    async def _handle_top(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.message.text:
            return

        side = self._parse_top_command(update.message.text)
        if not side:
            await update.message.reply_text("Usage: /top long or /top short")
            return

        if self.on_top:
            text = await self.on_top(side)
            await update.message.reply_text(text, parse_mode="HTML")
        else:
            await update.message.reply_text("No data yet")

    async def _handle_reversals(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return

        if self.on_reversals:
            text = await self.on_reversals()
            await update.message.reply_text(text, parse_mode="HTML")
        else:
            await update.message.reply_text("No data yet")

    async def _handle_asset(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.message.text:
            return

        symbol = self._parse_asset_command(update.message.text)
        if not symbol:
            await update.message.reply_text("Usage: /asset BTC")
            return

        if self.on_asset:
            text = await self.on_asset(symbol)
            await update.message.reply_text(text, parse_mode="HTML")
        else:
            await update.message.reply_text("No data yet")

    async def _handle_daily(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return

        if self.on_daily:
            text = await self.on_daily()
            await update.message.reply_text(text, parse_mode="HTML")
        else:
            await update.message.reply_text("No data yet")

    async def _handle_sentiment(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        if not update.message:
            return

        if self.on_sentiment:
            text = await self.on_sentiment()
            await update.message.reply_text(text, parse_mode="HTML")
        else:
            await update.message.reply_text("No data yet")

    async def _handle_active(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return

        if self.on_active:
            text = await self.on_active()
            await update.message.reply_text(text, parse_mode="HTML")
        else:
            await update.message.reply_text("No data yet")

    async def _handle_search(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.message.text:
            return

        query = self._parse_search_command(update.message.text)
        if not query:
            await update.message.reply_text("Usage: /search DOGE")
            return

        if self.on_search:
            text = await self.on_search(query)
            await update.message.reply_text(text, parse_mode="HTML")
        else:
            await update.message.reply_text("No data yet")

    async def _handle_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return

        if self.on_status:
            text = await self.on_status()
            await update.message.reply_text(text, parse_mode="HTML")
        else:
            await update.message.reply_text("Running")

    async def _handle_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return
        await update.message.reply_text(WELCOME_MESSAGE, parse_mode="HTML")

    async def _handle_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return
        await update.message.reply_text(HELP_MESSAGE, parse_mode="HTML")

    def setup_handlers(self, app: Application) -> None:  # type: ignore[type-arg]
        app.add_handler(CommandHandler("start", self._handle_start))
        app.add_handler(CommandHandler("help", self._handle_help))
        app.add_handler(CommandHandler("top", self._handle_top))
        app.add_handler(CommandHandler("reversals", self._handle_reversals))
        app.add_handler(CommandHandler("asset", self._handle_asset))
        app.add_handler(CommandHandler("daily", self._handle_daily))
        app.add_handler(CommandHandler("sentiment", self._handle_sentiment))
        app.add_handler(CommandHandler("active", self._handle_active))
        app.add_handler(CommandHandler("search", self._handle_search))
        app.add_handler(CommandHandler("status", self._handle_status))

    async def start_polling(self) -> None:
        self.app = Application.builder().token(self.bot_token).build()
        self.setup_handlers(self.app)
        await self.app.initialize()
        await self.app.start()

        # Set bot command menu
        await self.bot.set_my_commands(BOT_COMMANDS)

        if self.app.updater:
            await self.app.updater.start_polling()

    async def stop_polling(self) -> None:
        if self.app:
            if self.app.updater:
                await self.app.updater.stop()
            await self.app.stop()
            await self.app.shutdown()
