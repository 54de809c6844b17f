"""
Runtime configuration for billsync.

Everything is read from the environment:
- Airtable credentials and base
- Bill.com developer key, login and primary org
- Naming of the "<Org> Bill.com ... ID" columns in Airtable
- The Bill.com user that always approves last
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from billsync.services.errors import ConfigError

BILL_COM_HOSTS = {
    "production": {
        "api": "https://api.bill.com/api/v2",
        "app": "https://api.bill.com",
    },
    "sandbox": {
        "api": "https://api-sandbox.bill.com/api/v2",
        "app": "https://api-sandbox.bill.com",
    },
}


@dataclass
class Settings:
    airtable_api_key: Optional[str] = None
    airtable_base_id: Optional[str] = None
    airtable_api_url: str = "https://api.airtable.com/v0"

    bill_com_dev_key: Optional[str] = None
    bill_com_user_name: Optional[str] = None
    bill_com_password: Optional[str] = None
    bill_com_org_id: Optional[str] = None
    bill_com_env: str = "production"

    primary_org: str = "MSO"
    final_approver_user_id: Optional[str] = None
    http_timeout_seconds: float = 30.0

    @property
    def bill_com_api_url(self) -> str:
        return _hosts(self.bill_com_env)["api"]

    @property
    def bill_com_app_url(self) -> str:
        return _hosts(self.bill_com_env)["app"]

    def require(self, *names: str) -> None:
        """Raise ConfigError for the first setting in names that is unset."""
        for name in names:
            if not getattr(self, name):
                raise ConfigError(name, f"Set {name.upper()} in the environment")


def _hosts(env: str) -> dict:
    try:
        return BILL_COM_HOSTS[env]
    except KeyError:
        raise ConfigError("bill_com_env", f"Unknown Bill.com environment: {env!r}")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(1.0, float(raw))
    except (TypeError, ValueError):
        return default


def get_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        airtable_api_key=os.getenv("AIRTABLE_API_KEY"),
        airtable_base_id=os.getenv("AIRTABLE_BASE_ID"),
        airtable_api_url=os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0").rstrip("/"),
        bill_com_dev_key=os.getenv("BILL_COM_DEV_KEY"),
        bill_com_user_name=os.getenv("BILL_COM_USER_NAME"),
        bill_com_password=os.getenv("BILL_COM_PASSWORD"),
        bill_com_org_id=os.getenv("BILL_COM_ORG_ID"),
        bill_com_env=os.getenv("BILL_COM_ENV", "production").lower(),
        primary_org=os.getenv("PRIMARY_ORG", "MSO"),
        final_approver_user_id=os.getenv("FINAL_APPROVER_USER_ID"),
        http_timeout_seconds=_float_env("HTTP_TIMEOUT_SECONDS", 30.0),
    )
