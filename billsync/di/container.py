"""Dependency injection container for the API clients."""
import asyncio
from typing import Dict, Optional

from billsync.core.config import Settings, get_settings
from billsync.integrations.airtable import Base
from billsync.integrations.bill_com import Api


class ServiceContainer:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings
        self._base = None
        self._job_locks: Dict[str, asyncio.Lock] = {}

    def settings(self) -> Settings:
        if not self._settings:
            self._settings = get_settings()
        return self._settings

    def base(self) -> Base:
        if not self._base:
            self._base = Base(settings=self.settings())
        return self._base

    def bill_com(self) -> Api:
        # A Bill.com session belongs to one run; each caller gets its own.
        return Api(settings=self.settings())

    def job_lock(self, job: str) -> asyncio.Lock:
        """At most one run of a job at a time in this process."""
        if job not in self._job_locks:
            self._job_locks[job] = asyncio.Lock()
        return self._job_locks[job]

    async def aclose(self) -> None:
        if self._base:
            await self._base.aclose()
            self._base = None


container = ServiceContainer()
