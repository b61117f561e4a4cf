# ─────────────────────────────────────────────────────────────────
# main.py — App Entry Point & Wiring
#
# Builds the FastAPI app and owns the lifecycle of everything the
# offline check depends on:
#   settings  → config.py
#   registry  → database.py (in-memory or Firebase Realtime Database)
#   notifier  → alerts.py   (simulated or Firebase Cloud Messaging)
#   cycle     → checker.py
#   scheduler → timer.py
#
# Collaborators are created here and PASSED IN to the cycle. No
# module initialises a backend client at import time.
#
# Run locally:  uvicorn main:app --reload
# ─────────────────────────────────────────────────────────────────

import logging
from contextlib import asynccontextmanager
from typing import Optional

import firebase_admin
import uvicorn
from fastapi import FastAPI
from firebase_admin import credentials

from alerts import FirebaseNotifier, LoggingNotifier, Notifier, configure_logging
from checker import OfflineCheckCycle
from config import Settings, load_settings
from database import FirebaseRegistry, InMemoryRegistry, RegistryReader
from routes.checks import router as checks_router
from timer import Ticker

logger = logging.getLogger("main")

FIREBASE_APP_NAME = "offline-notifier"


def init_firebase(settings: Settings):
    """Initialise (or reuse) the named Firebase app for this process."""
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    cred = credentials.Certificate(settings.firebase_credentials) if settings.firebase_credentials else None
    options = {}
    if settings.firebase_database_url:
        options["databaseURL"] = settings.firebase_database_url

    logger.info("🔥 Initialising Firebase app")
    return firebase_admin.initialize_app(cred, options, name=FIREBASE_APP_NAME)


def build_reader(settings: Settings, firebase_app=None) -> RegistryReader:
    if settings.registry_backend == "firebase":
        return FirebaseRegistry(path=settings.registry_path, app=firebase_app)
    if settings.registry_seed_file:
        return InMemoryRegistry.from_json_file(settings.registry_seed_file)
    return InMemoryRegistry()


def build_notifier(settings: Settings, firebase_app=None) -> Notifier:
    if settings.notifier_backend == "firebase":
        return FirebaseNotifier(app=firebase_app, dry_run=settings.fcm_dry_run)
    return LoggingNotifier()


def create_app(
    settings: Optional[Settings] = None,
    reader: Optional[RegistryReader] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    """
    Builds the app. Tests pass their own reader/notifier; in
    production both are built from settings during startup.
    """
    if settings is None:
        settings = load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)

        firebase_app = None
        if settings.uses_firebase and (reader is None or notifier is None):
            firebase_app = init_firebase(settings)

        cycle = OfflineCheckCycle(
            reader=reader if reader is not None else build_reader(settings, firebase_app),
            notifier=notifier if notifier is not None else build_notifier(settings, firebase_app),
            threshold_seconds=settings.offline_threshold_seconds,
            fetch_timeout=settings.fetch_timeout_seconds,
        )
        app.state.cycle = cycle
        app.state.last_result = None

        def remember(result):
            app.state.last_result = result

        ticker = Ticker(cycle.run_cycle, interval=settings.check_interval_seconds, on_result=remember)
        app.state.ticker = ticker

        if settings.scheduler_enabled:
            ticker.start()
        else:
            logger.info("⏸️  Scheduler disabled — cycles run only via POST /checks/run")

        try:
            yield
        finally:
            await ticker.stop()
            if firebase_app is not None:
                firebase_admin.delete_app(firebase_app)

    app = FastAPI(
        title="Device Offline Notifier",
        description="Pushes an FCM notification when a device stops reporting telemetry",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.include_router(checks_router)

    @app.get("/")
    def root():
        return {
            "message": "Device Offline Notifier is running",
            "version": "1.0.0",
            "offline_threshold_seconds": settings.offline_threshold_seconds,
            "check_interval_seconds": settings.check_interval_seconds,
            "docs": "/docs"
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
