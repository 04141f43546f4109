# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""
Root pytest configuration with shared fixtures and markers.

This file is automatically loaded by pytest and provides:
- Custom markers for test categories
- Shared fixtures for webhook bodies, conversations and bots
"""

import json

import pytest
from aiohttp import web


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: Mark test as integration test (HTTP round trip)",
    )


# ============================================================================
# Shared Fixtures
# ============================================================================


@pytest.fixture
def make_body():
    """Factory for Actions SDK webhook request bodies."""

    def _make_body(
        conversation_id="conv-1",
        query="hello",
        intent="actions.intent.TEXT",
        data=None,
    ):
        conversation = {"conversationId": conversation_id, "type": "ACTIVE"}
        if data is not None:
            conversation["conversationToken"] = json.dumps({"data": data})
        return {
            "user": {"locale": "en-US"},
            "conversation": conversation,
            "inputs": [
                {
                    "intent": intent,
                    "rawInputs": [{"inputType": "VOICE", "query": query}],
                }
            ],
        }

    return _make_body


@pytest.fixture
def settings():
    """Bot settings using an existing web application (no listening)."""
    return {
        "id": "MyBot",
        "expressApp": web.Application(),
        "debug": True,
        "actionId": "MyAction",
    }


@pytest.fixture
def bot(settings):
    """Actions on Google bot without update handlers."""
    from actions_bot.adapter import ActionsOnGoogleBot

    return ActionsOnGoogleBot(settings)


def pytest_collection_modifyitems(config, items):
    """Mark HTTP round-trip tests as integration tests."""
    for item in items:
        if "test_webhook" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
