"""Application entry point: headless monitor that logs tree, tail and cost notifications."""

import logging
import signal
import sys

from PySide6.QtCore import QCoreApplication, QTimer
from PySide6.QtNetwork import QLocalServer, QLocalSocket

from claude_overseer.services.config_manager import ConfigManager
from claude_overseer.services.session_manager import SessionManager
from claude_overseer.utils.pricing import default_pricing, format_cost

logger = logging.getLogger("claude_overseer")

SOCKET_NAME = "claude-overseer-instance"


def _check_single_instance() -> QLocalServer | None:
    """Enforce single instance via QLocalSocket. Returns server if we're the first instance.

    Two instances would race on the same cost cache file.
    """
    socket = QLocalSocket()
    socket.connectToServer(SOCKET_NAME)
    if socket.waitForConnected(500):
        socket.close()
        return None

    server = QLocalServer()
    server.removeServer(SOCKET_NAME)
    server.listen(SOCKET_NAME)
    return server


def _configure_logging(config: ConfigManager):
    level = logging.DEBUG if config.get_bool("advanced/debugLogging") else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _wire_logging(manager: SessionManager, config: ConfigManager):
    def on_projects_changed():
        logger.info("Projects: %d", len(manager.get_projects()))

    def on_sessions_changed(project: str):
        logger.info("Sessions changed in %s (%d sessions)", project, len(manager.get_sessions(project)))

    def on_new_messages(file_path: str, records: list):
        logger.info("%d new record(s) in %s", len(records), file_path)

    def on_cost_updated():
        if not config.get_bool("general/showCosts"):
            return
        pricing = default_pricing()
        for project in manager.get_projects():
            cost = manager.get_project_cost(project.encoded_name)
            if not cost:
                continue
            breakdown = ", ".join(
                f"{pricing.model_name(model)} {format_cost(usd)}"
                for model, usd in sorted(manager.get_project_costs_by_model(project.encoded_name).items())
            )
            logger.info("%s: %s (%s)", project.name or project.encoded_name, format_cost(cost), breakdown)

    manager.projects_changed.connect(on_projects_changed)
    manager.sessions_changed.connect(on_sessions_changed)
    manager.new_messages.connect(on_new_messages)
    manager.cost_updated.connect(on_cost_updated)


def run(argv: list[str] | None = None) -> int:
    """Launch the monitor. An optional first argument overrides the projects root."""
    argv = list(sys.argv if argv is None else argv)
    app = QCoreApplication(argv)
    app.setApplicationName("Claude Overseer")
    app.setOrganizationName("claude-overseer")
    app.setOrganizationDomain("claude.local")

    config = ConfigManager()
    _configure_logging(config)

    instance_server = _check_single_instance()
    if instance_server is None:
        print("Another instance is already running.", file=sys.stderr)
        return 0

    # Ctrl+C quits through the event loop so cleanup() still flushes costs.
    # The idle timer hands control back to Python so the handler can run.
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    wakeup = QTimer()
    wakeup.start(250)
    wakeup.timeout.connect(lambda: None)

    projects_root = argv[1] if len(argv) > 1 else None
    manager = SessionManager(projects_root=projects_root, config=config)
    _wire_logging(manager, config)
    manager.watch_error.connect(lambda msg: logger.error("Watching stopped: %s", msg))

    manager.start()
    logger.info("Monitoring %s", manager.projects_root)

    ret = app.exec()
    manager.cleanup()
    instance_server.close()
    return ret
