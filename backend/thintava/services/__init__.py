from . import order_notify_service, session_monitor_service, welcome_service


def register_triggers(runner) -> None:
    """Subscribe every change-triggered handler to its model events."""
    order_notify_service.register_triggers(runner)
    session_monitor_service.register_triggers(runner)
    welcome_service.register_triggers(runner)
