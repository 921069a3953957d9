from __future__ import annotations

import sys

from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication

from bikebench.config import APP_NAME, APP_VERSION
from bikebench.data import database
from bikebench.logger import logger
from bikebench.resources import get_app_icon_path
from bikebench.ui.main_window import MainWindow


def main() -> int:
    database.initialize()
    logger.info("%s %s starting, database at %s", APP_NAME, APP_VERSION, database.get_database_path())

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setWindowIcon(QIcon(str(get_app_icon_path())))
    window = MainWindow()
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
