"""Wiring of the complaint services around one explicit session handle."""
from dataclasses import dataclass

from flask import current_app

from utils.complaint_queries import ComplaintQueries
from utils.complaint_store import ComplaintStore
from utils.history_ledger import HistoryLedger
from utils.lifecycle import LifecycleEngine
from utils.notification_sink import NotificationSink

EXTENSION_KEY = "complaint_services"


@dataclass
class ComplaintServices:
    store: ComplaintStore
    ledger: HistoryLedger
    notifications: NotificationSink
    lifecycle: LifecycleEngine
    queries: ComplaintQueries


def build_services(session, recent_resolved_limit: int = 12) -> ComplaintServices:
    store = ComplaintStore(session)
    ledger = HistoryLedger(session)
    sink = NotificationSink(session)
    return ComplaintServices(
        store=store,
        ledger=ledger,
        notifications=sink,
        lifecycle=LifecycleEngine(store, ledger, sink),
        queries=ComplaintQueries(store, ledger, recent_resolved_limit=recent_resolved_limit),
    )


def init_services(app, session) -> ComplaintServices:
    services = build_services(session, int(app.config.get("PUBLIC_RECENT_RESOLVED_LIMIT", 12)))
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> ComplaintServices:
    return current_app.extensions[EXTENSION_KEY]
