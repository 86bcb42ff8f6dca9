"""FastAPI endpoint that receives Telegram updates over a webhook."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from telegram import Update
from telegram.ext import Application

from chgk_bot.app.settings import AppSettings


LOGGER = logging.getLogger(__name__)


def create_webhook_app(
    application: Application,
    settings: AppSettings,
    *,
    manage_lifecycle: bool = True,
) -> FastAPI:
    """Build the ASGI app that feeds webhook updates into ``application``.

    With ``manage_lifecycle`` the Telegram application is initialised, the
    webhook registered and everything shut down together with the server.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if not manage_lifecycle:
            yield
            return

        await application.initialize()
        if settings.webhook_url:
            webhook_url = f"{settings.webhook_url}{settings.webhook_path}"
            LOGGER.info("Registering Telegram webhook at %s.", webhook_url)
            await application.bot.set_webhook(url=webhook_url, allowed_updates=Update.ALL_TYPES)
        await application.start()
        try:
            yield
        finally:
            await application.stop()
            await application.shutdown()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    async def healthz() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    async def telegram_webhook(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except ValueError as exc:
            LOGGER.warning("Webhook body is not valid JSON.")
            raise HTTPException(status_code=400, detail="Invalid update payload") from exc

        if not isinstance(payload, dict):
            LOGGER.warning("Webhook payload is not a JSON object: %r", type(payload).__name__)
            raise HTTPException(status_code=400, detail="Invalid update payload")

        LOGGER.debug("Received webhook payload: %s", payload)
        try:
            update = Update.de_json(payload, application.bot)
        except Exception as exc:  # noqa: BLE001 - any deserialization failure is a bad request
            LOGGER.exception("Failed to deserialize Telegram update")
            raise HTTPException(status_code=400, detail="Invalid update payload") from exc

        try:
            await application.process_update(update)
        except Exception as exc:  # noqa: BLE001 - report processing errors to Telegram
            LOGGER.exception("Failed to process Telegram update %s", payload.get("update_id"))
            raise HTTPException(status_code=500, detail="Failed to process update") from exc

        return JSONResponse({"ok": True})

    app.add_api_route("/healthz", healthz, methods=["GET"], name="healthz")
    app.add_api_route(settings.webhook_path, telegram_webhook, methods=["POST"], name="telegram_webhook")
    return app
