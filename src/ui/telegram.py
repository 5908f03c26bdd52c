"""
Telegram presenter.

Prompts are chat messages with an inline keyboard. Each button carries
``diag:<prompt id>:<index>``; the callback handler resolves the future the
prompt is awaiting with the chosen action object.
"""

import asyncio
import html
import itertools
from typing import Dict, List, Optional, Sequence

import structlog
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import CallbackQueryHandler, ContextTypes

from src.errors.taxonomy import ErrorSeverity, PromptChoice

from .presenter import Presenter

logger = structlog.get_logger(__name__)

CALLBACK_PREFIX = "diag"
MAX_MESSAGE_CHARS = 4000

SEVERITY_MARKERS = {
    ErrorSeverity.ERROR: "🛑 <b>Error</b>",
    ErrorSeverity.WARNING: "⚠️ <b>Warning</b>",
    ErrorSeverity.INFO: "ℹ️ <b>Info</b>",
}


def _escape_fitted(text: str, limit: int = MAX_MESSAGE_CHARS, keep_end: bool = False) -> str:
    """HTML-escape ``text`` and cut it to at most ``limit`` escaped characters."""
    escaped = html.escape(text)
    if len(escaped) <= limit:
        return escaped

    budget = limit - 1
    cut = text[-budget:] if keep_end else text[:budget]
    escaped = html.escape(cut)
    while len(escaped) > budget:
        # One raw character escapes to at most six.
        drop = -(-(len(escaped) - budget) // 6)
        cut = cut[drop:] if keep_end else cut[:-drop]
        escaped = html.escape(cut)
    return "…" + escaped if keep_end else escaped + "…"


class _PendingPrompt:
    def __init__(self, choices: Sequence[PromptChoice]):
        self.choices: List[PromptChoice] = list(choices)
        self.future: asyncio.Future = asyncio.get_running_loop().create_future()
        self.message_id: Optional[int] = None


class TelegramPresenter(Presenter):
    """Presents error prompts in a single Telegram chat."""

    def __init__(self, bot, chat_id: int):
        self.bot = bot
        self.chat_id = chat_id
        self._ids = itertools.count(1)
        self._pending: Dict[int, _PendingPrompt] = {}

    @property
    def pending_prompt_ids(self) -> List[int]:
        return list(self._pending)

    async def prompt(
        self,
        severity: ErrorSeverity,
        message: str,
        choices: Sequence[PromptChoice],
    ) -> Optional[PromptChoice]:
        prompt_id = next(self._ids)
        pending = _PendingPrompt(choices)
        self._pending[prompt_id] = pending

        keyboard = [
            [InlineKeyboardButton(choice.label, callback_data=f"{CALLBACK_PREFIX}:{prompt_id}:{index}")]
            for index, choice in enumerate(pending.choices)
        ]
        text = f"{SEVERITY_MARKERS[ErrorSeverity(severity)]}\n\n{_escape_fitted(message)}"

        try:
            sent = await self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                reply_markup=InlineKeyboardMarkup(keyboard),
            )
            pending.message_id = getattr(sent, "message_id", None)
            return await pending.future
        finally:
            self._pending.pop(prompt_id, None)

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Resolve the prompt a keyboard button belongs to."""
        query = update.callback_query
        await query.answer()

        try:
            _, prompt_id, index = query.data.split(":", 2)
            pending = self._pending.get(int(prompt_id))
            choice = pending.choices[int(index)] if pending else None
        except (ValueError, IndexError):
            logger.warning("Malformed diagnostics callback", callback_data=query.data)
            return

        if pending is None:
            logger.info("Callback for expired prompt", callback_data=query.data)
            try:
                await query.edit_message_reply_markup(reply_markup=None)
            except TelegramError as e:
                logger.debug("Could not clear stale keyboard", error=str(e))
            return

        try:
            await query.edit_message_reply_markup(reply_markup=None)
        except TelegramError as e:
            logger.debug("Could not clear prompt keyboard", error=str(e))

        if not pending.future.done():
            pending.future.set_result(choice)

    async def dismiss_all(self) -> None:
        for pending in list(self._pending.values()):
            if not pending.future.done():
                pending.future.set_result(None)

    async def notify(self, message: str) -> None:
        await self._send(f"ℹ️ {html.escape(message)}")

    async def open_url(self, url: str) -> None:
        await self.bot.send_message(
            chat_id=self.chat_id,
            text="🔗 Open in browser:",
            reply_markup=InlineKeyboardMarkup([[InlineKeyboardButton("Open", url=url)]]),
        )

    async def copy_text(self, text: str) -> None:
        await self._send(f"<pre>{_escape_fitted(text)}</pre>")

    async def show_log(self, text: str) -> None:
        body = text or "(diagnostic log is empty)"
        await self._send(f"📜 <b>Diagnostic log</b>\n<pre>{_escape_fitted(body, keep_end=True)}</pre>")

    async def open_file(self, path: str) -> None:
        await self._send(f"📄 Open <code>{html.escape(path)}</code> on the bot host.")

    async def open_settings(self, key: str) -> None:
        env_name = f"KUBEDIAG_{key.upper()}"
        await self._send(f"⚙️ Adjust <code>{html.escape(env_name)}</code> in the bot configuration.")

    async def _send(self, text: str) -> None:
        await self.bot.send_message(chat_id=self.chat_id, text=text, parse_mode=ParseMode.HTML)

    def callback_handler(self) -> CallbackQueryHandler:
        return CallbackQueryHandler(self.handle_callback, pattern=rf"^{CALLBACK_PREFIX}:")
