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
Actions SDK conversation webhook handling.

This module parses Actions on Google (Actions SDK, conversation webhook v2)
request bodies into Conversation objects, dispatches them to registered
intent handlers, and serializes the replies written into the conversation
back into the webhook response.

Request shape (abridged):
    {
        "conversation": {"conversationId": "...", "type": "ACTIVE",
                         "conversationToken": "{\"data\": {...}}"},
        "inputs": [{"intent": "actions.intent.TEXT",
                    "rawInputs": [{"inputType": "VOICE", "query": "..."}]}]
    }

Conversation data is round-tripped through the conversation token, so
anything stored in Conversation.data comes back on the next turn.

Version: 1.0.0
"""

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
import inspect
import json
import logging

from aiohttp import web

from actions_bot.translators import get_raw_query

logger = logging.getLogger(__name__)


MAIN_INTENT = "actions.intent.MAIN"
TEXT_INTENT = "actions.intent.TEXT"

ConversationHandler = Callable[["Conversation", str], Union[Awaitable[None], None]]
ErrorHandler = Callable[["Conversation", Exception], Union[Awaitable[None], None]]


class ResponseClosedError(Exception):
    """Raised when replying to a conversation that has already been closed."""


def _parse_token(token: Any) -> Dict[str, Any]:
    """Extract conversation data from a conversation token."""
    if not token:
        return {}

    try:
        parsed = json.loads(token)
    except (TypeError, ValueError) as e:
        logger.warning(f"Ignoring malformed conversation token: {e}")
        return {}

    data = parsed.get("data") if isinstance(parsed, dict) else None
    return data if isinstance(data, dict) else {}


# =============================================================================
# Conversation
# =============================================================================


class Conversation:
    """
    A single webhook exchange of an Actions on Google conversation.

    Attributes:
        id: Conversation identifier
        type: Conversation type (NEW, ACTIVE)
        intent: Intent of the first input
        data: Conversation data, persisted across turns
        request: The raw request body
        user: The user section of the request
    """

    def __init__(self, body: Mapping[str, Any]):
        self.request: Dict[str, Any] = dict(body)

        conversation = self.request.get("conversation")
        if not isinstance(conversation, dict):
            conversation = {}
        self.id: Optional[str] = conversation.get("conversationId")
        self.type: Optional[str] = conversation.get("type")
        self.data: Dict[str, Any] = _parse_token(conversation.get("conversationToken"))
        user = self.request.get("user")
        self.user: Dict[str, Any] = user if isinstance(user, dict) else {}

        inputs = self.request.get("inputs")
        first = inputs[0] if isinstance(inputs, list) and inputs else {}
        if not isinstance(first, dict):
            first = {}
        self.intent: Optional[str] = first.get("intent")

        self._responses: List[str] = []
        self._expect_user_response = True

    @property
    def query(self) -> str:
        """The user utterance of this turn."""
        return get_raw_query(self)

    @property
    def responses(self) -> List[str]:
        return list(self._responses)

    @property
    def expect_user_response(self) -> bool:
        return self._expect_user_response

    def ask(self, text: str) -> None:
        """
        Reply and keep the conversation open for the user's next input.

        Raises:
            ResponseClosedError: If close() has already been called
        """
        if not self._expect_user_response:
            raise ResponseClosedError(f"Conversation {self.id} has already been closed")
        self._responses.append(text)

    def close(self, text: str) -> None:
        """Reply and end the conversation."""
        if not self._expect_user_response:
            raise ResponseClosedError(f"Conversation {self.id} has already been closed")
        self._responses.append(text)
        self._expect_user_response = False

    def serialize(self) -> Dict[str, Any]:
        """Build the webhook response body."""
        items = [{"simpleResponse": {"textToSpeech": text}} for text in self._responses]

        if not self._expect_user_response:
            return {
                "expectUserResponse": False,
                "finalResponse": {"richResponse": {"items": items}},
            }

        return {
            "expectUserResponse": True,
            "conversationToken": json.dumps({"data": self.data}),
            "expectedInputs": [
                {
                    "inputPrompt": {"richInitialPrompt": {"items": items}},
                    "possibleIntents": [{"intent": TEXT_INTENT}],
                }
            ],
        }


def ask_if_open(conv: Any, text: str) -> bool:
    """
    Reply with ask() unless the conversation has already been closed.

    Returns:
        True if the reply was written, False if it was dropped
    """
    if not getattr(conv, "expect_user_response", True):
        logger.warning(
            f"Conversation {getattr(conv, 'id', None)} already closed, dropping reply: {text}"
        )
        return False
    conv.ask(text)
    return True


# =============================================================================
# Conversation App
# =============================================================================


class ConversationApp:
    """
    Dispatcher for Actions SDK conversation webhooks.

    Example:
        app = ConversationApp(verification="my-project")

        async def handle(conv, query):
            conv.ask(f"You said {query}")

        app.on_intent("actions.intent.MAIN", handle)
        app.on_fallback(handle)

        web_app.router.add_post("/fulfillment", app.handle)
    """

    def __init__(
        self,
        verification: Optional[str] = None,
        client_id: Optional[str] = None,
        debug: bool = False,
    ):
        """
        Initialize the conversation app.

        Args:
            verification: Actions on Google project identifier
            client_id: Account linking client identifier
            debug: Log request and response bodies
        """
        self.verification = verification
        self.client_id = client_id
        self.debug = bool(debug)

        self._intent_handlers: Dict[str, ConversationHandler] = {}
        self._fallback_handler: Optional[ConversationHandler] = None
        self._error_handler: Optional[ErrorHandler] = None

    def on_intent(self, intent: str, handler: ConversationHandler) -> None:
        """Register the handler for an intent."""
        self._intent_handlers[intent] = handler

    def on_fallback(self, handler: ConversationHandler) -> None:
        """Register the handler for intents with no handler of their own."""
        self._fallback_handler = handler

    def on_error(self, handler: ErrorHandler) -> None:
        """Register the handler for errors raised by intent handlers."""
        self._error_handler = handler

    async def handle_request(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Process one webhook request body.

        Args:
            body: Parsed JSON request body

        Returns:
            The webhook response body

        Raises:
            Exception: Errors from intent handlers when no error handler
                is registered
        """
        conv = Conversation(body)
        if self.debug:
            logger.debug(f"Conversation request: {json.dumps(body)}")

        try:
            handler = self._intent_handlers.get(conv.intent, self._fallback_handler)
            if handler is None:
                raise LookupError(f"No handler registered for intent {conv.intent}")
            result = handler(conv, conv.query)
            if inspect.isawaitable(result):
                await result

        except Exception as e:
            if self._error_handler is None:
                raise
            result = self._error_handler(conv, e)
            if inspect.isawaitable(result):
                await result

        if not conv.responses:
            logger.warning(f"No response set for conversation {conv.id}")

        response = conv.serialize()
        if self.debug:
            logger.debug(f"Conversation response: {json.dumps(response)}")
        return response

    async def handle(self, request: web.Request) -> web.Response:
        """aiohttp request handler for the fulfillment route."""
        try:
            body = await request.json()
        except ValueError:
            return web.json_response({"error": "Invalid JSON body"}, status=400)

        if not isinstance(body, dict):
            return web.json_response({"error": "Request body must be an object"}, status=400)

        response = await self.handle_request(body)
        return web.json_response(response, headers={"Google-Assistant-API-Version": "v2"})
