"""
FlowMonitor — flow-state monitoring for focused writing.
Entry point for the application.
"""

import faulthandler
import logging
import sys

faulthandler.enable()

from PySide6.QtWidgets import QApplication

from flowmonitor.config import load_config
from flowmonitor.ui.main_window import MainWindow
from flowmonitor.ui.styles import DARK_STYLESHEET


def setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("flow_monitor.log", encoding="utf-8"),
        ],
    )


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting FlowMonitor...")

    app = QApplication(sys.argv)
    app.setApplicationName("FlowMonitor")
    app.setOrganizationName("FlowMonitor")
    app.setStyleSheet(DARK_STYLESHEET)

    window = MainWindow(app, load_config())
    window.show()

    logger.info("Application started.")
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
