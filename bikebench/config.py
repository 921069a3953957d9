from __future__ import annotations

import os

from .data.database import get_storage_root

APP_NAME = "BikeBench"
APP_VERSION = "v1.0"

LOG_FILE = os.getenv("BIKEBENCH_LOG_FILE", str(get_storage_root() / "bikebench.log"))

# Spanish national numbers have nine digits once the country prefix is gone.
NATIONAL_NUMBER_LENGTH = 9
PHONE_LOOKUP_MIN_LENGTH = 9
DEFAULT_COUNTRY_CODE = "34"
