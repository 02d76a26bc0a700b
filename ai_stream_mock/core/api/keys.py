"""Typed application keys shared by the server and routes."""

from aiohttp import web

from ai_stream_mock.core.config_manager import MockServerConfig

CONFIG_KEY = web.AppKey("mock_config", MockServerConfig)
