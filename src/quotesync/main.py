"""Main application entry point."""

import asyncio
import json
import signal
import sys
from datetime import datetime, timezone
from typing import List, Optional

from aiohttp import web, web_runner
from dotenv import load_dotenv

from .api_clients import BaseRemoteClient, RemoteClientFactory
from .config import AppSettings, ConfigurationError, get_settings, load_seed_records, reload_settings
from .core import QuoteController, SyncEngine, TimedNotificationSink
from .core.controller import EXPORT_FAILED_MESSAGE, MISSING_FIELDS_MESSAGE
from .scheduler import PeriodicSyncHandle
from .store import (
    ALL_CATEGORIES,
    EXPORT_FILENAME,
    DatabaseManager,
    PersistenceError,
    Record,
    RecordStore,
    SlotRepository
)
from .utils.logging import setup_logging, get_logger


class QuoteSyncApp:
    """Quote sync application: local store, periodic sync and HTTP surface."""

    def __init__(self, settings: Optional[AppSettings] = None, client: Optional[BaseRemoteClient] = None):
        """Initialize the application.

        Args:
            settings: Application settings, defaults to the global settings
            client: Remote client override, built from settings if omitted
        """
        self.settings = settings or get_settings()
        self.logger = get_logger("QuoteSync")
        self.running = False
        self.started_at: Optional[datetime] = None

        self.db_manager: DatabaseManager | None = None
        self.store: RecordStore | None = None
        self.client: BaseRemoteClient | None = client
        self.notifier: TimedNotificationSink | None = None
        self.engine: SyncEngine | None = None
        self.controller: QuoteController | None = None
        self.periodic: PeriodicSyncHandle | None = None

        self.web_app: web.Application | None = None
        self.web_runner: web_runner.AppRunner | None = None

    async def startup(self, serve: bool = True):
        """Application startup."""
        self.logger.info(
            "Starting Quote Sync",
            version=self.settings.version,
            environment=self.settings.environment
        )

        self.db_manager = DatabaseManager(self.settings.store.database_url)
        self.db_manager.create_tables()

        self.store = RecordStore.open(
            SlotRepository(self.db_manager),
            seed=self._load_seed(),
            category_case_sensitive=self.settings.store.category_case_sensitive
        )

        if self.client is None:
            self.client = RemoteClientFactory.create_client(remote_settings=self.settings.remote)

        self.notifier = TimedNotificationSink(display_seconds=self.settings.notifications.display_seconds)
        self.engine = SyncEngine(
            self.store,
            self.client,
            self.notifier,
            timeout_seconds=self.settings.remote.timeout_seconds
        )
        self.controller = QuoteController(self.store, self.engine, self.notifier)

        if self.settings.scheduling.enabled:
            self.periodic = self.engine.start_periodic(
                interval_seconds=self.settings.scheduling.sync_interval_seconds,
                initial_delay_seconds=self.settings.scheduling.initial_delay_seconds
            )

        self.web_app = self.create_web_app()
        if serve:
            await self._start_web_server()

        self.running = True
        self.started_at = datetime.now(timezone.utc)
        self.logger.info("Quote Sync started successfully", quotes=len(self.store))

    async def shutdown(self):
        """Application shutdown."""
        self.logger.info("Shutting down Quote Sync")
        self.running = False

        if self.engine:
            self.engine.stop()
            await self.engine.wait_for_pushes(timeout=self.settings.remote.timeout_seconds)

        await self._stop_web_server()

        if self.client:
            await self.client.close()

        if self.store:
            self.store.close()

        if self.db_manager:
            self.db_manager.close()

        self.logger.info("Quote Sync stopped")

    async def run(self):
        """Run the main application loop."""
        await self.startup()

        try:
            while self.running:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            self.logger.info("Received shutdown signal")
        finally:
            await self.shutdown()

    def _load_seed(self) -> Optional[List[Record]]:
        seed_path = self.settings.store.seed_path
        if not seed_path:
            return None
        try:
            return load_seed_records(seed_path)
        except ConfigurationError as e:
            self.logger.warning("Seed file unusable, using built-in quotes", error=str(e))
            return None

    def create_web_app(self) -> web.Application:
        """Build the HTTP application exposing the controller."""
        app = web.Application()

        app.router.add_get('/health', self._health_handler)
        app.router.add_get('/status', self._status_handler)
        app.router.add_get('/quotes', self._list_quotes_handler)
        app.router.add_post('/quotes', self._add_quote_handler)
        app.router.add_get('/quotes/random', self._random_quote_handler)
        app.router.add_get('/categories', self._categories_handler)
        app.router.add_post('/filter', self._filter_handler)
        app.router.add_post('/sync', self._sync_handler)
        app.router.add_get('/export', self._export_handler)
        app.router.add_post('/import', self._import_handler)

        return app

    async def _start_web_server(self):
        self.web_runner = web_runner.AppRunner(self.web_app)
        await self.web_runner.setup()

        site = web_runner.TCPSite(self.web_runner, self.settings.server.host, self.settings.server.port)
        await site.start()

        self.logger.info(f"Web server started on http://{self.settings.server.host}:{self.settings.server.port}")

    async def _stop_web_server(self):
        if self.web_runner:
            await self.web_runner.cleanup()
            self.web_runner = None
            self.logger.info("Web server stopped")

    def _notification_data(self) -> Optional[dict]:
        current = self.notifier.current if self.notifier else None
        if current is None:
            return None
        return {"message": current.message, "severity": current.severity.value}

    async def _health_handler(self, request):
        """Health check endpoint."""
        uptime = (datetime.now(timezone.utc) - self.started_at).total_seconds() if self.started_at else 0
        database_ok = self.db_manager is not None and self.db_manager.test_connection()
        healthy = self.running and database_ok
        health_data = {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": self.settings.version,
            "environment": self.settings.environment,
            "database": "connected" if database_ok else "unavailable",
            "uptime_seconds": uptime
        }

        status_code = 200 if healthy else 503
        return web.json_response(health_data, status=status_code)

    async def _status_handler(self, request):
        """Detailed status endpoint."""
        next_sync = self.periodic.next_run_time if self.periodic else None
        status_data = {
            "application": {
                "name": self.settings.name,
                "version": self.settings.version,
                "running": self.running,
                "timestamp": datetime.now(timezone.utc).isoformat()
            },
            "store": {
                "quotes": len(self.store),
                "categories": len(self.store.categories()),
                "selected_category": self.controller.selected_category
            },
            "sync": {
                "syncing": self.engine.is_syncing,
                "periodic": bool(self.periodic and self.periodic.active),
                "next_sync_at": next_sync.isoformat() if next_sync else None,
                "remote": self.client.get_sync_info()
            },
            "notification": self._notification_data()
        }

        return web.json_response(status_data)

    async def _list_quotes_handler(self, request):
        category = request.query.get("category", ALL_CATEGORIES)
        records = self.store.filter_by_category(category)
        return web.json_response({
            "category": category,
            "quotes": [r.to_dict() for r in records]
        })

    async def _add_quote_handler(self, request):
        data = await self._read_json(request)
        if data is None:
            return web.json_response({"error": "Request body must be a JSON object"}, status=400)

        text = data.get("text")
        category = data.get("category")
        if not isinstance(text, str) or not isinstance(category, str):
            return web.json_response({"error": MISSING_FIELDS_MESSAGE}, status=400)

        if not self.controller.add_quote(text, category):
            return web.json_response({"error": MISSING_FIELDS_MESSAGE}, status=400)

        return web.json_response(
            {"quote": self.store.records[-1].to_dict(), "categories": self.store.categories()},
            status=201
        )

    async def _random_quote_handler(self, request):
        record = self.controller.show_random_quote()
        if record is None:
            return web.json_response(
                {"quote": None, "category": self.controller.selected_category},
                status=404
            )
        return web.json_response({"quote": record.to_dict(), "category": self.controller.selected_category})

    async def _categories_handler(self, request):
        return web.json_response({
            "categories": self.controller.render_categories(),
            "selected": self.controller.selected_category
        })

    async def _filter_handler(self, request):
        data = await self._read_json(request)
        if data is None or not isinstance(data.get("category"), str):
            return web.json_response({"error": "Expected {\"category\": <string>}"}, status=400)

        record = self.controller.apply_filter(data["category"])
        return web.json_response({
            "selected": self.controller.selected_category,
            "quote": record.to_dict() if record else None
        })

    async def _sync_handler(self, request):
        result = await self.controller.sync_now()
        return web.json_response({
            "outcome": result.outcome.value,
            "fetched": result.fetched,
            "added": result.added,
            "error": result.error_message,
            "notification": self._notification_data()
        })

    async def _export_handler(self, request):
        try:
            body = self.store.export_json()
        except PersistenceError as e:
            self.logger.error("Export failed", error=str(e))
            return web.json_response({"error": EXPORT_FAILED_MESSAGE}, status=500)

        return web.Response(
            text=body,
            content_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'}
        )

    async def _import_handler(self, request):
        payload = await request.read()
        result = self.controller.import_file(payload)
        if result is None:
            return web.json_response({"error": self._notification_data()}, status=400)
        return web.json_response({
            "imported": result.imported,
            "rejected": result.rejected,
            "quotes": len(self.store)
        })

    async def _read_json(self, request) -> Optional[dict]:
        try:
            data = await request.json()
        except (json.JSONDecodeError, ValueError):
            return None
        return data if isinstance(data, dict) else None


def setup_signal_handlers(app: QuoteSyncApp):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        app.logger.info(f"Received signal {signum}")
        app.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def main():
    """Main entry point."""
    load_dotenv()
    settings = reload_settings()
    setup_logging(settings.logging.level, settings.logging.format, settings.logging.file_path)

    logger = get_logger("main")
    logger.info("Initializing Quote Sync application")

    app = QuoteSyncApp(settings)
    setup_signal_handlers(app)

    await app.run()


def run():
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(0)
    except Exception as e:
        print(f"Application failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
