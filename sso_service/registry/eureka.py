"""
Eureka registration client.

Registers this instance with a Eureka server, keeps the lease alive with
periodic heartbeats and deregisters on shutdown.

Lifecycle:
    - Call start() during app startup (FastAPI lifespan)
    - Call stop() during app shutdown
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from sso_service.config import Settings

logger = logging.getLogger(__name__)


class EurekaRegistration:
    """
    Background registration of one service instance.

    start() spawns a single task that registers (with retries) and then
    renews the lease every HEARTBEAT_INTERVAL seconds. stop() cancels that
    task and removes the instance from the registry.
    """

    MAX_RETRIES = 5
    RETRY_DELAY = 2.0             # Seconds between registration attempts
    HEARTBEAT_INTERVAL = 30.0     # Eureka's default lease renewal interval
    REQUEST_TIMEOUT = 5.0

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_delay: Optional[float] = None,
        heartbeat_interval: Optional[float] = None
    ):
        self.settings = settings
        self.base_url = settings.eureka_url
        self.app_name = settings.service_name
        self.instance_id = f"{settings.service_name}-{settings.port}"
        self.retry_delay = self.RETRY_DELAY if retry_delay is None else retry_delay
        self.heartbeat_interval = self.HEARTBEAT_INTERVAL if heartbeat_interval is None else heartbeat_interval
        self.registered = False
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._task: Optional[asyncio.Task] = None

    def instance_payload(self) -> Dict[str, Any]:
        """Instance document sent on registration."""
        s = self.settings
        return {
            "instance": {
                "instanceId": self.instance_id,
                "app": self.app_name.upper(),
                "hostName": s.instance_host_name,
                "ipAddr": s.instance_ip_addr,
                "vipAddress": s.vip_address,
                "status": "UP",
                "port": {"$": s.port, "@enabled": "true"},
                "dataCenterInfo": {
                    "@class": "com.netflix.appinfo.InstanceInfo$DefaultDataCenterInfo",
                    "name": "MyOwn",
                },
            }
        }

    @property
    def _app_path(self) -> str:
        return self.app_name.upper()

    @property
    def _instance_path(self) -> str:
        return f"{self.app_name.upper()}/{self.instance_id}"

    async def start(self):
        """Open the HTTP client and launch the registration task."""
        if self._task is not None:
            logger.warning("EurekaRegistration already started")
            return

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.REQUEST_TIMEOUT,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )
        self._task = asyncio.create_task(self._run(), name="eureka-registration")
        logger.info("Eureka registration started for %s at %s", self.instance_id, self.base_url)

    async def stop(self):
        """Cancel the background task, deregister and close the client."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client is not None:
            if self.registered:
                await self.deregister()
            await self._client.aclose()
            self._client = None
        logger.info("Eureka registration stopped for %s", self.instance_id)

    async def register(self) -> bool:
        """
        Register the instance, retrying up to MAX_RETRIES times.

        Returns:
            True once the server accepted the registration
        """
        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                response = await self._client.post(self._app_path, json=self.instance_payload())
                if response.status_code in (200, 204):
                    self.registered = True
                    logger.info("Eureka registration successful: %s", self.instance_id)
                    return True
                logger.warning(
                    "Eureka registration attempt %d/%d rejected with status %d",
                    attempt, self.MAX_RETRIES, response.status_code
                )
            except httpx.HTTPError as e:
                logger.warning(
                    "Eureka registration attempt %d/%d failed: %s",
                    attempt, self.MAX_RETRIES, e
                )
            if attempt < self.MAX_RETRIES:
                await asyncio.sleep(self.retry_delay)

        logger.error("Eureka registration failed after %d attempts", self.MAX_RETRIES)
        return False

    async def heartbeat(self) -> bool:
        """
        Renew the lease. A 404 means the server forgot us, so register again.
        """
        try:
            response = await self._client.put(self._instance_path)
        except httpx.HTTPError as e:
            logger.warning("Eureka heartbeat failed: %s", e)
            return False

        if response.status_code == 404:
            logger.info("Eureka lease for %s not found, re-registering", self.instance_id)
            self.registered = False
            return await self.register()
        return response.status_code == 200

    async def deregister(self) -> bool:
        try:
            response = await self._client.delete(self._instance_path)
        except httpx.HTTPError as e:
            logger.error("Eureka deregistration failed: %s", e)
            return False
        self.registered = False
        if response.status_code != 200:
            logger.warning("Eureka deregistration returned status %d", response.status_code)
            return False
        logger.info("Eureka deregistration successful: %s", self.instance_id)
        return True

    async def _run(self):
        if not await self.register():
            return
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            await self.heartbeat()
