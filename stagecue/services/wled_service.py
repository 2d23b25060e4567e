import requests
from typing import List, Dict, Any, Optional

from stagecue.core.config import settings
from stagecue.schemas.device import DeviceState


class WledService:
    """Service for talking to WLED fixtures over their JSON API"""

    @staticmethod
    def _base_url(ip_address: str) -> str:
        """Get the JSON API root for a device"""
        return f"http://{ip_address}/json"

    @staticmethod
    def get_state(ip_address: str, timeout: float = None) -> Dict[str, Any]:
        """
        Retrieve the raw state object from a WLED device

        Args:
            ip_address: Device IP address (or host[:port])
            timeout: Request timeout in seconds

        Returns:
            Dictionary containing the WLED state

        Raises:
            ValueError: If ip_address is empty
            RuntimeError: If the device cannot be reached or returns an error
        """
        if not ip_address:
            raise ValueError("ip_address cannot be empty")

        url = f"{WledService._base_url(ip_address)}/state"
        try:
            response = requests.get(url, timeout=timeout or settings.WLED_STATE_TIMEOUT)
            response.raise_for_status()
            return response.json()

        except requests.RequestException as e:
            raise RuntimeError(f"Failed to read state from {ip_address}: {str(e)}") from e

    @staticmethod
    def set_state(ip_address: str, payload: Dict[str, Any], timeout: float = None) -> Dict[str, Any]:
        """
        Send a partial state update to a WLED device

        Args:
            ip_address: Device IP address (or host[:port])
            payload: WLED state object, see build_state_payload
            timeout: Request timeout in seconds

        Returns:
            The response body, or an empty dict when the device returns none

        Raises:
            ValueError: If ip_address is empty or payload is not a dict
            RuntimeError: If the device cannot be reached or returns an error
        """
        if not ip_address:
            raise ValueError("ip_address cannot be empty")
        if not isinstance(payload, dict):
            raise ValueError("payload must be a dict")

        url = f"{WledService._base_url(ip_address)}/state"
        try:
            response = requests.post(url, json=payload, timeout=timeout or settings.WLED_STATE_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RuntimeError(f"Failed to write state to {ip_address}: {str(e)}") from e

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {}
        # Firmware without "v": true answers {"success": true}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def probe(ip_address: str, timeout: float = None) -> bool:
        """Return True if the device answers GET /json/info with a 2xx"""
        if not ip_address:
            return False

        url = f"{WledService._base_url(ip_address)}/info"
        try:
            response = requests.get(url, timeout=timeout or settings.WLED_PROBE_TIMEOUT)
            return response.ok
        except requests.RequestException:
            return False

    @staticmethod
    def build_state_payload(
        on: Optional[bool] = None,
        brightness: Optional[int] = None,
        color: Optional[List[int]] = None,
        transition: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Build a WLED state object containing only the given fields

        `transition` is in WLED units of 100 ms. The color goes to the first
        color slot of segment 0.
        """
        payload: Dict[str, Any] = {}
        if on is not None:
            payload["on"] = on
        if brightness is not None:
            payload["bri"] = int(brightness)
        if color is not None:
            payload["seg"] = [{"id": 0, "col": [[int(c) for c in color]]}]
        if transition is not None:
            payload["transition"] = int(transition)
        return payload

    @staticmethod
    def parse_state(raw: Dict[str, Any]) -> DeviceState:
        """Convert a WLED state object into a DeviceState"""
        color = None
        segments = raw.get("seg") or []
        if segments:
            colors = segments[0].get("col") or []
            if colors and colors[0]:
                first = list(colors[0])[:4]
                color = first + [0] * (4 - len(first))

        return DeviceState(
            on=bool(raw.get("on", False)),
            brightness=int(raw.get("bri", 0)),
            color=color,
        )
