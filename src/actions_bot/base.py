# Copyright 2024-2025 Amiable Development
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Base bot class and neutral message models.

This module defines the platform-agnostic shapes exchanged between a
platform bot and the handlers that process its updates, plus the BaseBot
class every platform bot derives from.

Pipelines:
1. Incoming - the platform bot builds an Update and calls emit_update(),
   which awaits every registered update handler in order
2. Outgoing - handlers call send_message() (or reply()), which runs the
   platform hooks: format_outgoing_message -> send_formatted_message ->
   create_standard_body_response_components

Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional
import logging

logger = logging.getLogger(__name__)


class SettingsError(ValueError):
    """Raised when a bot is constructed with invalid settings."""


# =============================================================================
# Neutral Message Models
# =============================================================================


@dataclass(frozen=True)
class Participant:
    """Sender or recipient of a message."""

    id: Optional[str] = None


@dataclass(frozen=True)
class IncomingMessage:
    """
    Message content of an incoming update.

    Attributes:
        mid: Message identifier, unique per conversation turn
        seq: Sequence number (the conversation turn)
        text: User utterance
    """

    mid: str
    seq: Optional[int] = None
    text: str = ""


@dataclass(frozen=True)
class Update:
    """
    Normalized incoming update.

    Attributes:
        raw: The platform object the update was built from
        sender: Who sent the update (the conversation)
        recipient: Who received it (the bot)
        timestamp: Milliseconds since the epoch
        message: The message content
    """

    raw: Any
    sender: Participant
    recipient: Participant
    timestamp: int
    message: IncomingMessage


@dataclass
class OutgoingContent:
    """Text content of an outgoing message."""

    text: Optional[str] = None


@dataclass
class OutgoingMessage:
    """
    Normalized outgoing message.

    Attributes:
        recipient: Who the message is for
        message: The message content
    """

    recipient: Participant = field(default_factory=Participant)
    message: OutgoingContent = field(default_factory=OutgoingContent)


UpdateHandler = Callable[["BaseBot", Update], Awaitable[None]]


# =============================================================================
# Base Bot
# =============================================================================


class BaseBot:
    """
    Base class for platform bots.

    Subclasses set ``type``, validate and apply their settings, and
    implement the four platform hooks (format_update,
    format_outgoing_message, send_formatted_message,
    create_standard_body_response_components).

    Example:
        bot = SomePlatformBot(settings)

        @bot.on_update
        async def echo(bot, update):
            await bot.reply(update, update.message.text)
    """

    type = "base"

    def __init__(self, settings: Optional[Mapping[str, Any]] = None):
        self.settings: Dict[str, Any] = {}
        self.id: Optional[str] = None
        self.receives: Dict[str, bool] = {}
        self.sends: Dict[str, bool] = {}
        self._update_handlers: List[UpdateHandler] = []

    def apply_settings(self, settings: Mapping[str, Any]) -> None:
        """Store a copy of the settings on the bot."""
        self.settings = dict(settings)

    # =========================================================================
    # Incoming Pipeline
    # =========================================================================

    def on_update(self, handler: UpdateHandler) -> UpdateHandler:
        """
        Register an update handler.

        Can be used as a decorator. Handlers are awaited in registration
        order with (bot, update).
        """
        self._update_handlers.append(handler)
        return handler

    async def emit_update(self, update: Update) -> None:
        """
        Hand an update to every registered handler.

        Errors raised by a handler propagate to the caller.
        """
        if not self._update_handlers:
            logger.warning(f"{self.type} bot has no update handlers, dropping {update.message.mid}")
            return

        for handler in self._update_handlers:
            await handler(self, update)

    # =========================================================================
    # Outgoing Pipeline
    # =========================================================================

    async def send_message(
        self,
        outgoing_message: OutgoingMessage,
        send_options: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Format and send an outgoing message.

        Args:
            outgoing_message: The message to send
            send_options: Platform-specific send options

        Returns:
            Standard body response components (recipient_id, message_id)
        """
        formatted = await self.format_outgoing_message(outgoing_message)
        raw = await self.send_formatted_message(formatted, send_options)
        return await self.create_standard_body_response_components(
            outgoing_message, formatted, raw
        )

    async def reply(self, update: Update, text: str) -> Dict[str, Any]:
        """
        Send a text reply to the conversation an update came from.

        Args:
            update: The update being answered
            text: Reply text

        Returns:
            Standard body response components
        """
        outgoing = OutgoingMessage(
            recipient=Participant(id=update.sender.id),
            message=OutgoingContent(text=text),
        )
        return await self.send_message(outgoing, {"mid": update.message.mid})

    # =========================================================================
    # Platform Hooks
    # =========================================================================

    async def format_update(self, raw: Any) -> Update:
        raise NotImplementedError

    async def format_outgoing_message(
        self, outgoing_message: Optional[OutgoingMessage]
    ) -> Dict[str, Any]:
        raise NotImplementedError

    async def send_formatted_message(
        self,
        formatted_message: Optional[Mapping[str, Any]],
        send_options: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        raise NotImplementedError

    async def create_standard_body_response_components(
        self,
        sent_outgoing_message: Optional[OutgoingMessage],
        sent_raw_message: Optional[Mapping[str, Any]],
        raw: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        raise NotImplementedError
