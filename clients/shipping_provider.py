"""
Biteship shipping rate and tracking client.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from core.exceptions import ShippingProviderError
from utils.logger import get_logger

logger = get_logger(__name__)

# package dimensions in cm, used when the caller does not send item details
DEFAULT_DIMENSIONS = {"length": 20, "width": 15, "height": 10}


@dataclass(frozen=True)
class ShippingConfig:
    api_key: str
    base_url: str = "https://api.biteship.com/v1"
    origin_area_id: str = ""
    couriers: str = "jne,jnt,sicepat"
    default_weight: int = 1000
    timeout: float = 15.0

    @classmethod
    def from_settings(cls, settings) -> "ShippingConfig":
        return cls(
            api_key=settings.BITESHIP_API_KEY,
            base_url=settings.BITESHIP_BASE_URL.rstrip("/"),
            origin_area_id=settings.BITESHIP_ORIGIN_AREA_ID,
            couriers=settings.BITESHIP_COURIERS,
            default_weight=settings.BITESHIP_DEFAULT_WEIGHT,
        )


@dataclass(frozen=True)
class ShippingRate:
    courier: str
    service: str
    cost: int
    eta: Optional[str] = None

    def as_dict(self) -> dict:
        return {"courier": self.courier, "service": self.service, "cost": self.cost, "eta": self.eta}


class ShippingProviderClient:

    def __init__(self, config: ShippingConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._http = http_client or httpx.Client(timeout=config.timeout)

    def close(self):
        self._http.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        if not self.config.api_key:
            raise ShippingProviderError("Shipping provider API key is not configured")

        try:
            response = self._http.request(
                method,
                f"{self.config.base_url}{path}",
                headers={"Authorization": f"Bearer {self.config.api_key}", "Accept": "application/json"},
                **kwargs
            )
        except httpx.HTTPError as e:
            logger.error("Shipping provider unreachable", extra={"path": path, "error": str(e)})
            raise ShippingProviderError(f"Shipping provider unreachable: {e}") from e

        if response.is_error:
            logger.error(
                "Shipping provider request failed",
                extra={"path": path, "status_code": response.status_code, "body": response.text[:500]}
            )
            raise ShippingProviderError(f"Shipping provider request failed ({response.status_code})")

        return response.json()

    def rates(
        self,
        destination_area_id: str,
        total_weight: int,
        total_value: int,
        couriers: Optional[str] = None,
    ) -> list[ShippingRate]:
        body = {
            "origin_area_id": self.config.origin_area_id,
            "destination_area_id": destination_area_id,
            "couriers": couriers or self.config.couriers,
            "items": [{
                "name": "Package",
                "description": "Checkout items",
                "value": int(total_value),
                "weight": max(1, int(total_weight)),
                "quantity": 1,
                **DEFAULT_DIMENSIONS,
            }],
        }

        logger.debug("Requesting shipping rates", extra={"destination_area_id": destination_area_id})
        data = self._request("POST", "/rates/couriers", json=body)

        return [
            ShippingRate(
                courier=entry.get("courier_code", ""),
                service=entry.get("courier_service_code", ""),
                cost=int(entry.get("price", 0)),
                eta=entry.get("duration") or entry.get("shipment_duration_range"),
            )
            for entry in data.get("pricing", [])
        ]

    def track(self, waybill_id: str, courier_code: str) -> dict:
        data = self._request("GET", f"/trackings/{waybill_id}/couriers/{courier_code}")
        return {
            "waybill_id": data.get("waybill_id", waybill_id),
            "courier": courier_code,
            "status": data.get("status"),
            "history": data.get("history", []),
        }
