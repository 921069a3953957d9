from __future__ import annotations

import sqlite3
from typing import Dict

from ..errors import StoreError
from ..logger import logger
from ..models.ticket_models import BillingMode, ShopSettings, WorkMode
from .database import create_connection

_DEFAULTS: Dict[str, str] = {
    "shop_name": "Bicicletas Manrubia",
    "callback_phone": "964 667 035",
    "country_code": "34",
    "work_mode": "tasks",
    "billing_mode": "itemized",
    "deep_link_scheme": "direct",
}

_DEEP_LINK_SCHEMES = {"direct", "web"}


def get_setting(key: str) -> str:
    key = key.strip()
    try:
        with create_connection() as connection:
            row = connection.execute(
                "SELECT value FROM settings WHERE key = ?",
                (key,),
            ).fetchone()
    except sqlite3.Error as exc:
        logger.error("Failed to read setting %s: %s", key, exc)
        raise StoreError(f"Could not load the settings: {exc}") from exc

    if row is None:
        return _DEFAULTS.get(key, "")
    return row["value"]


def set_setting(key: str, value: str) -> None:
    key = key.strip()
    try:
        with create_connection() as connection:
            connection.execute(
                """
                INSERT INTO settings (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            connection.commit()
    except sqlite3.Error as exc:
        logger.error("Failed to save setting %s: %s", key, exc)
        raise StoreError(f"Could not save the settings: {exc}") from exc


def get_shop_settings() -> ShopSettings:
    shop_name = get_setting("shop_name").strip() or _DEFAULTS["shop_name"]
    callback_phone = get_setting("callback_phone").strip() or _DEFAULTS["callback_phone"]

    country_code = "".join(ch for ch in get_setting("country_code") if ch.isdigit())
    if not country_code:
        country_code = _DEFAULTS["country_code"]

    work_raw = get_setting("work_mode").strip().lower()
    try:
        work_mode = WorkMode(work_raw)
    except ValueError:
        work_mode = WorkMode(_DEFAULTS["work_mode"])

    billing_raw = get_setting("billing_mode").strip().lower()
    try:
        billing_mode = BillingMode(billing_raw)
    except ValueError:
        billing_mode = BillingMode(_DEFAULTS["billing_mode"])

    scheme = get_setting("deep_link_scheme").strip().lower()
    if scheme not in _DEEP_LINK_SCHEMES:
        scheme = _DEFAULTS["deep_link_scheme"]

    return ShopSettings(
        shop_name=shop_name,
        callback_phone=callback_phone,
        country_code=country_code,
        work_mode=work_mode,
        billing_mode=billing_mode,
        deep_link_scheme=scheme,
    )


def update_shop_settings(settings: ShopSettings) -> ShopSettings:
    set_setting("shop_name", settings.shop_name.strip())
    set_setting("callback_phone", settings.callback_phone.strip())
    set_setting("country_code", settings.country_code.strip().lstrip("+"))
    set_setting("work_mode", str(getattr(settings.work_mode, "value", settings.work_mode)).strip().lower())
    set_setting("billing_mode", str(getattr(settings.billing_mode, "value", settings.billing_mode)).strip().lower())
    scheme = settings.deep_link_scheme.strip().lower()
    set_setting("deep_link_scheme", scheme if scheme in _DEEP_LINK_SCHEMES else _DEFAULTS["deep_link_scheme"])
    return get_shop_settings()
