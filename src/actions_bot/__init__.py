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
Actions on Google bot adapter.

Connects Actions on Google conversation webhooks to platform-agnostic
update handlers. Each webhook call becomes one Update; replies sent by the
handlers are written back into the webhook response of the same turn.

Usage:
    from actions_bot import ActionsOnGoogleBot

    bot = ActionsOnGoogleBot({"port": 8080, "actionId": "my-project"})

    @bot.on_update
    async def echo(bot, update):
        await bot.reply(update, update.message.text)

    await bot.start()
"""

__version__ = "1.0.0"

from .adapter import ActionsOnGoogleBot
from .base import (
    BaseBot,
    IncomingMessage,
    OutgoingContent,
    OutgoingMessage,
    Participant,
    SettingsError,
    Update,
)
from .conversation import Conversation, ConversationApp
from .registry import ConversationRegistry

__all__ = [
    "__version__",
    "ActionsOnGoogleBot",
    "BaseBot",
    "Conversation",
    "ConversationApp",
    "ConversationRegistry",
    "IncomingMessage",
    "OutgoingContent",
    "OutgoingMessage",
    "Participant",
    "SettingsError",
    "Update",
]
