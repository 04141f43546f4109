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
Actions on Google bot.

Receives Actions SDK conversation webhooks on POST /{id}/fulfillment,
turns each conversation turn into a neutral Update and answers the
still-open webhook with whatever the update handlers send back.

Settings:
    id: Bot identifier, also the route prefix (default "actions-on-google")
    port: Port to listen on when no expressApp is given
    expressApp: Existing aiohttp web.Application to add the route to
    debug: Log webhook request and response bodies
    actionId: Actions on Google project identifier (required)
    clientId: Account linking client identifier (optional)
    errorMessage: Reply used when a turn fails (optional)

Example:
    bot = ActionsOnGoogleBot({"port": 8080, "actionId": "my-project"})

    @bot.on_update
    async def echo(bot, update):
        await bot.reply(update, update.message.text)

    await bot.start()

Version: 1.0.0
"""

from typing import Any, Dict, Mapping, Optional
import logging

from aiohttp import web

from actions_bot import translators
from actions_bot.base import BaseBot, OutgoingMessage, SettingsError, Update
from actions_bot.conversation import MAIN_INTENT, ConversationApp, ask_if_open
from actions_bot.handler import TurnHandler
from actions_bot.registry import ConversationRegistry

logger = logging.getLogger(__name__)


LISTEN_HOST = "0.0.0.0"


class ActionsOnGoogleBot(BaseBot):
    """
    Bot for Actions on Google conversation webhooks.

    Attributes:
        conversations: Registry of conversations with an open turn
        aog_app: Conversation app dispatching webhook intents
        web_app: aiohttp application serving the fulfillment route
        request_listener: Same as web_app

    Construction does not bind a socket. When the bot creates its own web
    application, it listens on 0.0.0.0:{port} only after await bot.start().
    A supplied expressApp is served by its owner.
    """

    type = "actions-on-google"

    def __init__(self, settings: Mapping[str, Any]):
        """
        Initialize the bot.

        Args:
            settings: Bot settings (see module docstring)

        Raises:
            SettingsError: If settings are invalid
        """
        super().__init__(settings)

        self.receives = {"text": True}
        self.sends = {"text": True}

        self._validate_settings(settings)
        self.apply_settings(settings)

        self.conversations = ConversationRegistry()
        self.turn_handler = TurnHandler(self, self.conversations, self.error_message)
        self.aog_app = self._setup_actions_app()
        self.web_app = self._setup_app_server(settings)
        self.request_listener = self.web_app

        self._runner: Optional[web.AppRunner] = None

    # =========================================================================
    # Settings
    # =========================================================================

    def _validate_settings(self, settings: Mapping[str, Any]) -> None:
        if settings.get("expressApp") is None and settings.get("port") is None:
            raise SettingsError(
                f"Bots of type {self.type} must be defined with an 'expressApp' or 'port' in their settings"
            )

        if not isinstance(settings.get("actionId"), str):
            raise SettingsError(
                f"Bots of type {self.type} must be defined with an string 'actionId' in their settings"
            )

        if settings.get("clientId") is not None and not isinstance(settings["clientId"], str):
            raise SettingsError(
                f"Bots of type {self.type} should be defined with a string 'clientId' in their settings"
            )

        if settings.get("errorMessage") is not None and not isinstance(
            settings["errorMessage"], str
        ):
            raise SettingsError(
                f"Bots of type {self.type} should be defined with a string 'errorMessage' in their settings"
            )

    def apply_settings(self, settings: Mapping[str, Any]) -> None:
        super().apply_settings(settings)
        self.id = settings.get("id") or self.type
        self.port: Optional[int] = settings.get("port")
        self.debug = bool(settings.get("debug", False))
        self.action_id: str = settings["actionId"]
        self.client_id: Optional[str] = settings.get("clientId")
        self.error_message: Optional[str] = settings.get("errorMessage")

    # =========================================================================
    # Setup
    # =========================================================================

    def _setup_actions_app(self) -> ConversationApp:
        aog_app = ConversationApp(
            verification=self.action_id,
            client_id=self.client_id,
            debug=self.debug,
        )
        aog_app.on_intent(MAIN_INTENT, self.turn_handler.handle_intent)
        aog_app.on_fallback(self.turn_handler.handle_intent)
        aog_app.on_error(self.turn_handler.handle_error)
        return aog_app

    def _setup_app_server(self, settings: Mapping[str, Any]) -> web.Application:
        web_app = settings.get("expressApp")
        self._owns_web_app = web_app is None
        if web_app is None:
            web_app = web.Application()

        web_app.router.add_post(self.fulfillment_path, self.aog_app.handle)
        return web_app

    @property
    def fulfillment_path(self) -> str:
        return f"/{self.id}/fulfillment"

    async def start(self) -> None:
        """
        Start listening for webhook requests.

        Does nothing when the bot was given an existing web application;
        serving that application is up to its owner.
        """
        if not self._owns_web_app or self._runner is not None:
            return

        self._runner = web.AppRunner(self.web_app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, LISTEN_HOST, self.port)
        await site.start()
        logger.info(f"{self.type} bot listening for requests on port {self.port}")

    async def stop(self) -> None:
        """Stop listening for webhook requests."""
        if self._runner is None:
            return

        await self._runner.cleanup()
        self._runner = None
        logger.info(f"{self.type} bot stopped listening on port {self.port}")

    # =========================================================================
    # Platform Hooks
    # =========================================================================

    async def format_update(self, raw: Any) -> Update:
        return await translators.format_update(raw, self.id)

    async def format_outgoing_message(
        self, outgoing_message: Optional[OutgoingMessage]
    ) -> Dict[str, Any]:
        return await translators.format_outgoing_message(outgoing_message)

    async def send_formatted_message(
        self,
        formatted_message: Optional[Mapping[str, Any]],
        send_options: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        """
        Write a formatted response into its open conversation.

        Args:
            formatted_message: {"response": text}
            send_options: Must carry the "mid" of the turn being answered

        Returns:
            {"mid": ..., "response": ...}, also when the conversation is
            no longer open or has already been closed
        """
        mid = send_options.get("mid") if send_options else None
        response = formatted_message.get("response") if formatted_message else None
        logger.debug(f"Sending message for {mid}: {response!r}")

        conv = self.conversations.get(mid)
        if conv is None:
            logger.warning(f"No open conversation for {mid}, response not delivered")
        elif response is not None:
            ask_if_open(conv, response)

        return {"mid": mid, "response": response}

    async def create_standard_body_response_components(
        self,
        sent_outgoing_message: Optional[OutgoingMessage],
        sent_raw_message: Optional[Mapping[str, Any]],
        raw: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        mid = raw.get("mid") if raw else None
        recipient = getattr(sent_outgoing_message, "recipient", None)
        body_response = {
            "recipient_id": getattr(recipient, "id", None),
            "message_id": mid,
        }
        logger.debug(f"Returning standard body responses for {mid}: {body_response}")
        return body_response
